"""
Face Mesh Analyzer Module

Runs one frame through the analysis pipeline:

    landmark source -> emotion -> gaze -> engagement

No face-mesh model is wired in. The landmark source hands back a constant
468-point vector for every frame, so results depend only on the emotion
cycle. Swap PlaceholderLandmarkSource for a real extractor once one exists;
the rest of the pipeline does not change.
"""

import logging
from typing import Any, Optional

from analyzers.emotion_analyzer import EmotionAnalyzer, PRIMARY_CONFIDENCE
from analyzers.engagement_estimator import EngagementEstimator
from analyzers.gaze_estimator import GazeEstimator
from analyzers.models import FrameAnalysis, InteractionData, LandmarkVector

logger = logging.getLogger(__name__)


class PlaceholderLandmarkSource:
    """Landmark source that ignores the frame and returns a constant vector."""

    def __init__(self, count: int = 468, fill: float = 0.5):
        self._vector = LandmarkVector.placeholder(count, fill)

    def landmarks_for(self, frame: Any) -> LandmarkVector:
        return self._vector


class FaceMeshAnalyzer:
    """
    Per-frame analysis pipeline.

    Each frame runs the emotion classifier exactly once, so the emotion stored
    with a frame is the one that was scored.

    Usage:
        analyzer = FaceMeshAnalyzer()
        analysis = analyzer.process_frame(frame)
        if analysis:
            print(analysis.engagement.value)
    """

    def __init__(
        self,
        emotion_analyzer: Optional[EmotionAnalyzer] = None,
        gaze_estimator: Optional[GazeEstimator] = None,
        engagement_estimator: Optional[EngagementEstimator] = None,
        landmark_source=None,
    ):
        self.emotion_analyzer = emotion_analyzer or EmotionAnalyzer()
        self.gaze_estimator = gaze_estimator or GazeEstimator()
        self.engagement_estimator = engagement_estimator or EngagementEstimator()
        self.landmark_source = landmark_source or PlaceholderLandmarkSource()

    def process_frame(
        self,
        frame: Any = None,
        interaction: Optional[InteractionData] = None,
    ) -> Optional[FrameAnalysis]:
        """
        Analyze one camera frame.

        Args:
            frame: Image array (H, W[, C]) or None when no image is available
            interaction: Interaction to factor into this frame's engagement

        Returns:
            FrameAnalysis, or None if the pipeline failed for this frame
        """
        try:
            shape = getattr(frame, "shape", None)
            if shape is not None and len(shape) >= 2:
                logger.debug("Processing frame: %dx%d", shape[1], shape[0])
            else:
                logger.debug("Processing frame without image data")

            landmarks = self.landmark_source.landmarks_for(frame)
            emotion = self.emotion_analyzer.predict_emotion(landmarks)
            gaze = self.gaze_estimator.estimate_gaze(landmarks)
            metrics = self.engagement_estimator.get_engagement_metrics(emotion, gaze, interaction)
            engagement = self.engagement_estimator.estimate_engagement(emotion, gaze, interaction)

            return FrameAnalysis(
                emotion=emotion,
                gaze=gaze,
                engagement=engagement,
                emotion_confidence=PRIMARY_CONFIDENCE,
                gaze_confidence=self.gaze_estimator.get_gaze_confidence(landmarks),
                metrics=metrics,
                landmark_count=len(landmarks),
            )
        except Exception as e:
            logger.error("Error processing frame: %s", e, exc_info=True)
            return None
