"""
Facial analysis repository.

Single entry point the tracking session uses for everything that leaves the
process: legacy face-session and engagement submissions plus the AI/ML
session lifecycle. Every operation returns a Result instead of raising, so
callers only have to branch on result.success.
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Sequence, TypeVar

import requests

from analyzers.labels import EmotionLabel, EngagementState, GazeDirection
from analyzers.models import FaceSessionData
from services.aiml_service import AiMlService, SessionSnapshot, get_aiml_service
from services.api_service import ApiService, get_api_service
from services.backend_client import is_successful
from services.payloads import BatchAnalysisResult, EngagementData, FacialLandmark

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a repository call: data on success, error and message on failure."""
    success: bool
    data: Optional[T] = None
    error: Optional[BaseException] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: BaseException, message: Optional[str] = None) -> "Result":
        return cls(success=False, error=error, message=message or str(error))

    def get_or_none(self) -> Optional[T]:
        return self.data if self.success else None

    def get_or_raise(self) -> T:
        if not self.success:
            raise self.error or RuntimeError(self.message or "Operation failed")
        return self.data


class FacialAnalysisRepository:
    """
    Usage:
        repo = FacialAnalysisRepository()
        repo.start_aiml_session()
        result = repo.submit_all_session_data(session_data, engagement_states)
        if result.success:
            print(result.data)
    """

    def __init__(self, api: Optional[ApiService] = None, aiml: Optional[AiMlService] = None):
        self._api = api
        self._aiml = aiml

    @property
    def api(self) -> ApiService:
        if self._api is None:
            self._api = get_api_service()
        return self._api

    @property
    def aiml(self) -> AiMlService:
        if self._aiml is None:
            self._aiml = get_aiml_service()
        return self._aiml

    # ------------------------------------------------------------------
    # Legacy API
    # ------------------------------------------------------------------

    def submit_face_session(self, session_data: Sequence[FaceSessionData]) -> Result[str]:
        try:
            response = self.api.submit_face_session(session_data)
            if is_successful(response):
                return Result.ok("Session data submitted successfully")
            return Result.fail(Exception(f"HTTP {response.status_code}"), "Failed to submit session data")
        except requests.RequestException as e:
            logger.error("Face session submission failed: %s", e)
            return Result.fail(e, f"Network error: {e}")

    def submit_engagement(self, engagement_data: Sequence[EngagementData]) -> Result[str]:
        try:
            response = self.api.submit_engagement(engagement_data)
            if is_successful(response):
                return Result.ok("Engagement data submitted successfully")
            return Result.fail(Exception(f"HTTP {response.status_code}"), "Failed to submit engagement data")
        except requests.RequestException as e:
            logger.error("Engagement submission failed: %s", e)
            return Result.fail(e, f"Network error: {e}")

    # ------------------------------------------------------------------
    # AI/ML API
    # ------------------------------------------------------------------

    def start_aiml_session(self) -> Result[str]:
        try:
            return Result.ok(self.aiml.start_session())
        except Exception as e:
            logger.error("Failed to start AI/ML session: %s", e)
            return Result.fail(e, "Failed to start AI/ML session")

    def stream_facial_data(
        self,
        landmarks: Sequence[FacialLandmark],
        emotion: EmotionLabel,
        gaze: GazeDirection,
        engagement: EngagementState,
        confidence: float,
    ) -> Result[Any]:
        """Record one frame with the AI/ML service; data is the AnalysisResult when a post happened."""
        try:
            return Result.ok(self.aiml.stream_facial_data(landmarks, emotion, gaze, engagement, confidence))
        except Exception as e:
            logger.error("Failed to stream facial data: %s", e)
            return Result.fail(e, "Failed to stream facial data")

    def close_aiml_session(self) -> Result[SessionSnapshot]:
        """Detach the current AI/ML session so it can be submitted later."""
        try:
            return Result.ok(self.aiml.close_session())
        except Exception as e:
            logger.error("Failed to close AI/ML session: %s", e)
            return Result.fail(e, "Failed to close AI/ML session")

    def end_aiml_session(self, snapshot: Optional[SessionSnapshot] = None) -> Result[Optional[BatchAnalysisResult]]:
        """Submit the batch for snapshot, or for the current session when none is given."""
        try:
            return Result.ok(self.aiml.end_session(snapshot))
        except Exception as e:
            logger.error("Failed to end AI/ML session: %s", e)
            return Result.fail(e, "Failed to end AI/ML session")

    # ------------------------------------------------------------------
    # Combined
    # ------------------------------------------------------------------

    def submit_all_session_data(
        self,
        session_data: Sequence[FaceSessionData],
        engagement_states: Sequence[EngagementData],
        aiml_session: Optional[SessionSnapshot] = None,
    ) -> Result[str]:
        """
        Submit both legacy lists, then end the AI/ML session.

        Succeeds only when both legacy submissions succeed. The AI/ML batch
        never decides the outcome; when it returns insights, the average
        engagement is appended to the success message.

        Args:
            aiml_session: Session detached with close_aiml_session(); the
                          current AI/ML session is closed when omitted
        """
        session_result = self.submit_face_session(session_data)
        engagement_result = self.submit_engagement(engagement_states)
        batch_result = self.end_aiml_session(aiml_session).get_or_none()

        if session_result.success and engagement_result.success:
            message = "Session data submitted successfully!"
            if batch_result is not None:
                message += f" AI analysis: {batch_result.session_insights.average_engagement:g}% engagement"
            return Result.ok(message)

        failures: List[str] = [r.message for r in (session_result, engagement_result) if not r.success and r.message]
        logger.warning("Session submission failed: %s", "; ".join(failures))
        return Result.fail(
            Exception("; ".join(failures) or "Submission failed"),
            "Failed to submit session data",
        )


# Lazy singleton: initialized on first use
_repository: Optional[FacialAnalysisRepository] = None


def get_repository() -> FacialAnalysisRepository:
    """Return the repository instance, creating it on first call (lazy init)."""
    global _repository
    if _repository is None:
        _repository = FacialAnalysisRepository()
    return _repository
