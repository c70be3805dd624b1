"""
Tracking Session.

Owns one face-tracking session end to end: a background capture loop feeds
frames to the FaceMeshAnalyzer, each analysis is appended to the session and
recorded with the AI/ML backend, and stopping the session submits everything
on a background thread.

State lives in TrackingUiState and is only read through get_state(), which
returns a snapshot:

    is_tracking        capture loop accepting frames
    session_data       one FaceSessionData per analyzed frame
    engagement_states  (timestamp, state) per analyzed frame
    latest_emotion     label of the last frame ("Neutral" before any frame)
    latest_engagement  state of the last frame (Unknown before any frame)
    message / error    outcome of the last submission
    is_loading         submission in flight

Pipeline: capture frame -> analyze (emotion, gaze, engagement) -> record face
data -> stream to AI/ML backend -> record engagement state.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

import config
from analyzers.engagement_estimator import EngagementEstimator
from analyzers.face_mesh_analyzer import FaceMeshAnalyzer, PlaceholderLandmarkSource
from analyzers.labels import EmotionLabel, EngagementState
from analyzers.models import FaceSessionData, FrameAnalysis, InteractionData, now_ms
from services.aiml_service import SessionSnapshot
from services.facial_analysis_repository import FacialAnalysisRepository, Result, get_repository
from services.payloads import EngagementData, FacialLandmark

logger = logging.getLogger(__name__)

# Confidence reported with every streamed frame until real landmarks exist
FACE_DATA_CONFIDENCE = 0.8

# Synthetic camera frame used by the capture loop (height, width, channels)
CAPTURE_FRAME_SHAPE = (480, 640, 3)


@dataclass
class TrackingUiState:
    """Observable state of a tracking session."""
    is_tracking: bool = False
    session_data: List[FaceSessionData] = field(default_factory=list)
    engagement_states: List[EngagementData] = field(default_factory=list)
    latest_emotion: str = EmotionLabel.NEUTRAL.value
    latest_engagement: EngagementState = EngagementState.UNKNOWN
    message: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isTracking": self.is_tracking,
            "sessionData": [d.to_dict() for d in self.session_data],
            "engagementStates": [e.to_dict() for e in self.engagement_states],
            "latestEmotion": self.latest_emotion,
            "latestEngagement": self.latest_engagement.value,
            "message": self.message,
            "isLoading": self.is_loading,
            "error": self.error,
        }


class TrackingSession:
    """
    Tracking session controller.

    Usage:
        session = TrackingSession()
        session.start_tracking()
        ...
        session.stop_tracking(wait=True)
        print(session.get_state().message)
    """

    def __init__(
        self,
        repository: Optional[FacialAnalysisRepository] = None,
        analyzer: Optional[FaceMeshAnalyzer] = None,
        frame_interval_ms: Optional[int] = None,
    ):
        self._repository = repository
        self.analyzer = analyzer or FaceMeshAnalyzer(
            engagement_estimator=EngagementEstimator(),
            landmark_source=PlaceholderLandmarkSource(
                count=config.LANDMARK_COUNT,
                fill=config.PLACEHOLDER_LANDMARK_VALUE,
            ),
        )
        self.frame_interval_sec = max(10, int(frame_interval_ms or config.FRAME_INTERVAL_MS)) / 1000.0

        self.lock = threading.Lock()
        self._state = TrackingUiState()
        self._pending_interaction: Optional[InteractionData] = None
        self.last_analysis: Optional[FrameAnalysis] = None

        # Threading and control
        self.capture_thread: Optional[threading.Thread] = None
        self.submit_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._capture_frame = np.zeros(CAPTURE_FRAME_SHAPE, dtype=np.uint8)

    @property
    def repository(self) -> FacialAnalysisRepository:
        if self._repository is None:
            self._repository = get_repository()
        return self._repository

    @property
    def is_tracking(self) -> bool:
        with self.lock:
            return self._state.is_tracking

    def get_state(self) -> TrackingUiState:
        """Snapshot of the current state (thread-safe)."""
        with self.lock:
            return self._state_with_copied_lists()

    def _state_with_copied_lists(self) -> TrackingUiState:
        s = self._state
        return TrackingUiState(
            is_tracking=s.is_tracking,
            session_data=list(s.session_data),
            engagement_states=list(s.engagement_states),
            latest_emotion=s.latest_emotion,
            latest_engagement=s.latest_engagement,
            message=s.message,
            is_loading=s.is_loading,
            error=s.error,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self, auto_capture: bool = True) -> TrackingUiState:
        """
        Reset the session and start tracking.

        Args:
            auto_capture: Run the background capture loop. When False, frames are
                          only analyzed through process_frame().
        """
        self._stop_capture()
        with self.lock:
            self._state = TrackingUiState(is_tracking=True)
            self._pending_interaction = None
            self.last_analysis = None

        result = self.repository.start_aiml_session()
        if not result.success:
            logger.warning("AI/ML session not started: %s", result.message)

        if auto_capture:
            self._stop_event.clear()
            self.capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
            self.capture_thread.start()

        logger.info("Tracking started (auto_capture=%s)", auto_capture)
        return self.get_state()

    def stop_tracking(self, wait: bool = False) -> TrackingUiState:
        """
        Stop tracking and submit the session on a background thread.

        Args:
            wait: Block until the submission finished.
        """
        with self.lock:
            if not self._state.is_tracking:
                return self._state_with_copied_lists()
            self._state.is_tracking = False
            self._state.is_loading = True
            session_data = list(self._state.session_data)
            engagement_states = list(self._state.engagement_states)

        self._stop_capture()
        # A restart after this point opens a fresh AI/ML session
        closed = self.repository.close_aiml_session()
        aiml_session = closed.data if closed.success else SessionSnapshot()
        logger.info(
            "Tracking stopped: submitting %d frames, %d engagement states",
            len(session_data), len(engagement_states),
        )
        self.submit_thread = threading.Thread(
            target=self._submit_session,
            args=(session_data, engagement_states, aiml_session),
            daemon=True,
        )
        self.submit_thread.start()
        if wait:
            self.submit_thread.join()
        return self.get_state()

    def toggle_tracking(self) -> TrackingUiState:
        if self.is_tracking:
            return self.stop_tracking()
        return self.start_tracking()

    def _stop_capture(self) -> None:
        self._stop_event.set()
        thread = self.capture_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self.capture_thread = None

    def _capture_loop(self) -> None:
        """Analyze one frame per interval until stopped."""
        while not self._stop_event.is_set():
            try:
                self.process_frame(self._capture_frame)
            except Exception as e:
                logger.error("Error in capture loop: %s", e, exc_info=True)
            self._stop_event.wait(self.frame_interval_sec)

    def _submit_session(
        self,
        session_data: List[FaceSessionData],
        engagement_states: List[EngagementData],
        aiml_session: SessionSnapshot,
    ) -> None:
        try:
            result = self.repository.submit_all_session_data(
                session_data, engagement_states, aiml_session=aiml_session
            )
        except Exception as e:
            logger.error("Session submission raised: %s", e, exc_info=True)
            result = Result.fail(e, f"Unexpected error: {e}")

        with self.lock:
            if result.success:
                self._state.message = result.data
            else:
                self._state.error = result.message
            self._state.is_loading = False

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def record_interaction(self, interaction: InteractionData) -> None:
        """Factor an interaction into the next analyzed frame only."""
        with self.lock:
            self._pending_interaction = interaction
        logger.debug("Interaction recorded: %s", interaction.interaction_type)

    def process_frame(self, frame: Any = None) -> Optional[FrameAnalysis]:
        """
        Analyze one frame and record the result.

        Returns:
            FrameAnalysis, or None when not tracking or the frame could not be analyzed
        """
        with self.lock:
            if not self._state.is_tracking:
                return None
            interaction = self._pending_interaction
            self._pending_interaction = None

        analysis = self.analyzer.process_frame(frame, interaction)
        if analysis is None:
            return None

        with self.lock:
            self.last_analysis = analysis
        self.on_face_data(analysis.to_session_data())
        self.on_engagement(analysis.engagement, analysis.timestamp)
        return analysis

    def on_face_data(self, data: FaceSessionData) -> None:
        """Append a face record and stream it; ignored when not tracking."""
        with self.lock:
            if not self._state.is_tracking:
                return
            self._state.session_data.append(data)
            self._state.latest_emotion = data.emotion.value

        result = self.repository.stream_facial_data(
            [FacialLandmark.face_center(FACE_DATA_CONFIDENCE)],
            data.emotion,
            data.gaze,
            data.engagement,
            FACE_DATA_CONFIDENCE,
        )
        if not result.success:
            logger.warning("Streaming failed: %s", result.message)

    def on_engagement(self, state: EngagementState, timestamp: Optional[int] = None) -> None:
        """Append an engagement state; ignored when not tracking."""
        with self.lock:
            if not self._state.is_tracking:
                return
            self._state.engagement_states.append(
                EngagementData(timestamp=timestamp if timestamp is not None else now_ms(), state=state)
            )
            self._state.latest_engagement = state

    def clear_message(self) -> None:
        with self.lock:
            self._state.message = None

    def clear_error(self) -> None:
        with self.lock:
            self._state.error = None
