"""
Services package for Cronos Facial.

This package contains the modules that talk to the backends:
- Backend client: JSON-over-HTTP POST with timeout and endpoint context on errors
- API service: one method per legacy and AI/ML endpoint
- AI/ML service: session id, stream buffer, end-of-session batch, predictions
- Facial analysis repository: Result-returning facade used by the tracking session
"""

from .api_service import ApiService, get_api_service
from .aiml_service import AiMlService, SessionSnapshot, get_aiml_service
from .facial_analysis_repository import FacialAnalysisRepository, Result, get_repository

__all__ = [
    'ApiService',
    'get_api_service',
    'AiMlService',
    'SessionSnapshot',
    'get_aiml_service',
    'FacialAnalysisRepository',
    'Result',
    'get_repository',
]
