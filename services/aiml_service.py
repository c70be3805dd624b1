"""
AI/ML backend session service.

Owns the analysis session on the AI/ML side:
  • start_session() issues a new session id and clears buffered data
  • stream_facial_data() records one frame; every STREAM_BUFFER_SIZE frames the
    latest frame is posted to facial-analysis/stream
  • submit_batch_analysis() posts every recorded frame of the session to
    facial-analysis/batch
  • get_engagement_prediction() asks ml-predictions/engagement for a forecast
  • close_session() detaches the current session as a SessionSnapshot
  • end_session() submits the batch and closes the session

A snapshot taken with close_session() can be submitted later with
end_session(snapshot) without touching whichever session is current by then.

Backend failures are logged and reported as None; telemetry loss never
interrupts tracking. Session state, buffers and counters are guarded by a
lock so the capture thread and HTTP handlers can share one service.
"""

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import requests

import config
from analyzers.emotion_analyzer import PRIMARY_CONFIDENCE, emotion_score_distribution
from analyzers.labels import EmotionLabel, EngagementState, GazeDirection
from analyzers.models import now_ms
from services.api_service import ApiService, get_api_service
from services.backend_client import is_successful
from services.payloads import (
    AnalysisResult,
    BatchAnalysisResult,
    BatchFacialData,
    EmotionData,
    EngagementPrediction,
    EngagementPredictionRequest,
    FacialAnalysisData,
    FacialLandmark,
    GazeData,
)

logger = logging.getLogger(__name__)

# Placeholder until eye-openness is measured
DEFAULT_EYE_OPENNESS = 0.8

LOW_ENGAGEMENT_MARKER = "low engagement"


@dataclass(frozen=True)
class SessionSnapshot:
    """A detached AI/ML session: its id and every data point it recorded."""
    session_id: Optional[str] = None
    data_points: List[FacialAnalysisData] = field(default_factory=list)


class AiMlService:
    """
    Streams facial analysis to the AI/ML backend and submits session batches.

    Usage:
        service = AiMlService()
        session_id = service.start_session()
        service.stream_facial_data(landmarks, emotion, gaze, engagement, confidence)
        result = service.end_session()
    """

    def __init__(
        self,
        api: Optional[ApiService] = None,
        buffer_size: Optional[int] = None,
        max_data_points: Optional[int] = None,
    ):
        self._api = api
        self.buffer_size = max(1, int(buffer_size or config.STREAM_BUFFER_SIZE))
        self._lock = threading.Lock()
        self._session_id: Optional[str] = None
        # Frames waiting for the next stream post
        self._stream_buffer: List[FacialAnalysisData] = []
        # Every frame of the session, for the end-of-session batch
        self._session_points: deque = deque(maxlen=max(1, int(max_data_points or config.SESSION_MAX_DATA_POINTS)))

        self.last_analysis: Optional[AnalysisResult] = None
        self.low_engagement_flagged = False
        self.frames_streamed = 0

    @property
    def api(self) -> ApiService:
        if self._api is None:
            self._api = get_api_service()
        return self._api

    @property
    def session_id(self) -> Optional[str]:
        with self._lock:
            return self._session_id

    def start_session(self) -> str:
        """Start a new analysis session and return its id."""
        with self._lock:
            self._session_id = str(uuid.uuid4())
            self._stream_buffer.clear()
            self._session_points.clear()
            self.last_analysis = None
            self.low_engagement_flagged = False
            self.frames_streamed = 0
            session_id = self._session_id
        logger.info("Started new session: %s", session_id)
        return session_id

    def get_session_data(self) -> List[FacialAnalysisData]:
        """Snapshot of every data point recorded in the current session."""
        with self._lock:
            return list(self._session_points)

    def build_facial_data(
        self,
        session_id: str,
        landmarks: Sequence[FacialLandmark],
        emotion: EmotionLabel,
        gaze: GazeDirection,
        engagement: EngagementState,
        confidence: float,
    ) -> FacialAnalysisData:
        return FacialAnalysisData(
            session_id=session_id,
            timestamp=now_ms(),
            landmarks=list(landmarks),
            emotions=EmotionData(
                primary_emotion=emotion.value,
                confidence=PRIMARY_CONFIDENCE,
                emotion_scores=emotion_score_distribution(emotion),
            ),
            gaze=GazeData(
                direction=gaze.value,
                confidence=confidence,
                eye_openness=DEFAULT_EYE_OPENNESS,
            ),
            engagement=engagement,
            confidence=confidence,
            metadata={
                "deviceId": config.DEVICE_ID,
                "appVersion": config.APP_VERSION,
                "emotionDetectionMethod": config.EMOTION_DETECTION_METHOD,
            },
        )

    def stream_facial_data(
        self,
        landmarks: Sequence[FacialLandmark],
        emotion: EmotionLabel,
        gaze: GazeDirection,
        engagement: EngagementState,
        confidence: float,
    ) -> Optional[AnalysisResult]:
        """
        Record one analyzed frame; post to the stream endpoint when the buffer fills.

        Starts a session if none is open.

        Returns:
            AnalysisResult when a post happened and succeeded, otherwise None
        """
        with self._lock:
            session_id = self._session_id
        if session_id is None:
            session_id = self.start_session()

        facial_data = self.build_facial_data(session_id, landmarks, emotion, gaze, engagement, confidence)

        with self._lock:
            self._stream_buffer.append(facial_data)
            self._session_points.append(facial_data)
            if len(self._stream_buffer) < self.buffer_size:
                return None
            to_send = list(self._stream_buffer)
            self._stream_buffer.clear()

        return self._send_buffered_data(to_send)

    def _send_buffered_data(self, buffered: List[FacialAnalysisData]) -> Optional[AnalysisResult]:
        """Post the most recent buffered frame to the stream endpoint."""
        if not buffered:
            return None
        try:
            response = self.api.stream_facial_data(buffered[-1])
            if not is_successful(response):
                logger.error("Failed to stream data: HTTP %s", response.status_code)
                return None
            result = AnalysisResult.from_dict(_json_object(response))
        except (requests.RequestException, ValueError) as e:
            logger.error("Error streaming data to AI/ML backend: %s", e)
            return None

        with self._lock:
            self.frames_streamed += len(buffered)
        logger.debug("AI/ML analysis result: %s", result.insights)
        self.handle_analysis_result(result)
        return result

    def handle_analysis_result(self, result: AnalysisResult) -> None:
        """Log AI insights and recommendations; flag low engagement when reported."""
        for insight in result.insights:
            logger.info("AI Insight: %s", insight)
        for recommendation in result.recommendations:
            logger.info("AI Recommendation: %s", recommendation)
        low = any(LOW_ENGAGEMENT_MARKER in i.lower() for i in result.insights)
        with self._lock:
            self.last_analysis = result
            if low:
                self.low_engagement_flagged = True

    def snapshot(self) -> SessionSnapshot:
        """The current session without closing it."""
        with self._lock:
            return SessionSnapshot(self._session_id, list(self._session_points))

    def close_session(self) -> SessionSnapshot:
        """Detach the current session and return it; later frames open a new one."""
        with self._lock:
            closed = SessionSnapshot(self._session_id, list(self._session_points))
            self._session_id = None
            self._stream_buffer.clear()
            self._session_points.clear()
        if closed.session_id is not None:
            logger.info("Session closed: %s (%d data points)", closed.session_id, len(closed.data_points))
        return closed

    def submit_batch_analysis(self, snapshot: Optional[SessionSnapshot] = None) -> Optional[BatchAnalysisResult]:
        """
        Submit every recorded frame of a session.

        Args:
            snapshot: Session to submit (default: the current session)

        Returns:
            BatchAnalysisResult on success; None when there is no session, no data,
            or the backend call failed
        """
        if snapshot is None:
            snapshot = self.snapshot()
        session_id = snapshot.session_id
        points = list(snapshot.data_points)
        if session_id is None:
            return None
        if not points:
            logger.warning("No data to submit for batch analysis")
            return None

        batch = BatchFacialData(
            session_id=session_id,
            start_time=points[0].timestamp,
            end_time=points[-1].timestamp,
            data_points=points,
        )
        try:
            response = self.api.submit_batch_analysis(batch)
            if not is_successful(response):
                logger.error("Batch analysis failed: HTTP %s", response.status_code)
                return None
            result = BatchAnalysisResult.from_dict(_json_object(response))
        except (requests.RequestException, ValueError) as e:
            logger.error("Error submitting batch analysis: %s", e)
            return None

        logger.info(
            "Batch analysis completed: average engagement %.1f (%s)",
            result.session_insights.average_engagement,
            result.session_insights.engagement_trend,
        )
        return result

    def get_engagement_prediction(
        self,
        historical_data: Optional[Sequence[FacialAnalysisData]] = None,
        context: Optional[str] = None,
        time_window_ms: Optional[int] = None,
    ) -> Optional[EngagementPrediction]:
        """
        Ask the backend for an engagement forecast.

        Args:
            historical_data: Data points to base the forecast on (default: current session)
            context: Free-form context tag (default: config.PREDICTION_CONTEXT)
            time_window_ms: History window (default: config.PREDICTION_TIME_WINDOW_MS)
        """
        request = EngagementPredictionRequest(
            historical_data=list(historical_data) if historical_data is not None else self.get_session_data(),
            current_context=context or config.PREDICTION_CONTEXT,
            time_window=int(time_window_ms if time_window_ms is not None else config.PREDICTION_TIME_WINDOW_MS),
        )
        try:
            response = self.api.get_engagement_prediction(request)
            if not is_successful(response):
                logger.error("Prediction request failed: HTTP %s", response.status_code)
                return None
            prediction = EngagementPrediction.from_dict(_json_object(response))
        except (requests.RequestException, ValueError) as e:
            logger.error("Error getting engagement prediction: %s", e)
            return None

        logger.info("Engagement prediction: %s", prediction.predicted_engagement.value)
        return prediction

    def end_session(self, snapshot: Optional[SessionSnapshot] = None) -> Optional[BatchAnalysisResult]:
        """
        Submit the final batch of a session.

        Without a snapshot the current session is closed and submitted. A
        snapshot from close_session() is submitted as is and leaves the
        current session alone.
        """
        if snapshot is None:
            snapshot = self.close_session()
        result = self.submit_batch_analysis(snapshot)
        logger.info("Session ended: %s", snapshot.session_id)
        return result


def _json_object(response: requests.Response) -> dict:
    """Decode a JSON object body; empty bodies decode to {}. Raises ValueError otherwise."""
    if not (response.content or b"").strip():
        return {}
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected response format: expected object, got {type(data).__name__}")
    return data


# Lazy singleton: initialized on first use
_aiml_service: Optional[AiMlService] = None


def get_aiml_service() -> AiMlService:
    """Return the AI/ML service instance, creating it on first call (lazy init)."""
    global _aiml_service
    if _aiml_service is None:
        _aiml_service = AiMlService()
    return _aiml_service
