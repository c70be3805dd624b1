"""
Backend API service module.

One method per backend endpoint. Legacy endpoints (face-sessions, engagement)
take plain record lists; AI/ML endpoints (facial-analysis/*, ml-predictions/*)
take the payloads in services.payloads. Methods return the raw HTTP response;
interpreting status codes is left to the caller.
"""

from typing import Iterable, Optional

import requests

import config
from analyzers.models import FaceSessionData
from services.backend_client import BackendClient
from services.payloads import (
    BatchFacialData,
    EngagementData,
    EngagementPredictionRequest,
    FacialAnalysisData,
)

FACE_SESSIONS_PATH = "face-sessions"
ENGAGEMENT_PATH = "engagement"
STREAM_PATH = "facial-analysis/stream"
BATCH_PATH = "facial-analysis/batch"
PREDICTION_PATH = "ml-predictions/engagement"


class ApiService:
    """
    Client for the legacy API and the AI/ML analysis API.

    Usage:
        api = ApiService()
        response = api.submit_face_session(session_data)
    """

    def __init__(
        self,
        legacy_client: Optional[BackendClient] = None,
        aiml_client: Optional[BackendClient] = None,
    ):
        self.legacy = legacy_client or BackendClient(config.API_BASE_URL)
        self.aiml = aiml_client or BackendClient(config.AIML_API_BASE_URL)

    # Legacy API

    def submit_face_session(self, session_data: Iterable[FaceSessionData]) -> requests.Response:
        return self.legacy.post_json(FACE_SESSIONS_PATH, [d.to_dict() for d in session_data])

    def submit_engagement(self, engagement_data: Iterable[EngagementData]) -> requests.Response:
        return self.legacy.post_json(ENGAGEMENT_PATH, [d.to_dict() for d in engagement_data])

    # AI/ML API

    def stream_facial_data(self, facial_data: FacialAnalysisData) -> requests.Response:
        return self.aiml.post_json(STREAM_PATH, facial_data.to_dict())

    def submit_batch_analysis(self, batch_data: BatchFacialData) -> requests.Response:
        return self.aiml.post_json(BATCH_PATH, batch_data.to_dict())

    def get_engagement_prediction(self, prediction_request: EngagementPredictionRequest) -> requests.Response:
        return self.aiml.post_json(PREDICTION_PATH, prediction_request.to_dict())


# Lazy singleton: initialized on first use to avoid reading config at import time
_api_service: Optional[ApiService] = None


def get_api_service() -> ApiService:
    """Return the API service instance, creating it on first call (lazy init)."""
    global _api_service
    if _api_service is None:
        _api_service = ApiService()
    return _api_service
