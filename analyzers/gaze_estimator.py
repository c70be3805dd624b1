"""
Gaze Estimator Module

Estimates where the user is looking from a frame's landmark vector.

A real implementation would compare iris centers (MediaPipe 468-477) against
the eye corners (33/133, 362/263). Until landmarks carry real geometry, the
horizontal and vertical offsets are two projections of the landmark sum:

    offset_x = ((sum mod 1.0) - 0.5) * 0.6          positive = right
    offset_y = (((sum * 1.3) mod 1.0) - 0.5) * 0.5  positive = up

Each offset beyond +/-0.15 sets a horizontal or vertical component; the two
components combine into one of nine directions. The estimator holds no state.
"""

import logging
import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from analyzers.labels import GazeDirection
from analyzers.models import LandmarkVector

logger = logging.getLogger(__name__)

GAZE_THRESHOLD_X = 0.15
GAZE_THRESHOLD_Y = 0.15

HORIZONTAL_SCALE = 0.6
VERTICAL_SCALE = 0.5
VERTICAL_PROJECTION = 1.3

# Reported whenever landmarks are present
GAZE_CONFIDENCE = 0.85

Landmarks = Union[LandmarkVector, Sequence[float], np.ndarray]


def _as_vector(landmarks: Landmarks) -> LandmarkVector:
    if isinstance(landmarks, LandmarkVector):
        return landmarks
    try:
        return LandmarkVector(landmarks)
    except (TypeError, ValueError):
        logger.warning("Unusable landmark input (%s); treating as empty", type(landmarks).__name__)
        return LandmarkVector()


class GazeEstimator:
    """
    Maps a landmark vector to a GazeDirection.

    Usage:
        estimator = GazeEstimator()
        direction = estimator.estimate_gaze(landmarks)
        confidence = estimator.get_gaze_confidence(landmarks)
    """

    def gaze_offsets(self, landmarks: Landmarks) -> Optional[Tuple[float, float]]:
        """
        Horizontal and vertical gaze offsets for the landmarks.

        Returns:
            (offset_x, offset_y), or None when there are no landmarks or
            their sum is not finite
        """
        vector = _as_vector(landmarks)
        if vector.is_empty():
            return None
        total = vector.total()
        if not math.isfinite(total):
            logger.warning("Landmark sum is not finite; gaze offsets unavailable")
            return None
        offset_x = (math.fmod(total, 1.0) - 0.5) * HORIZONTAL_SCALE
        offset_y = (math.fmod(total * VERTICAL_PROJECTION, 1.0) - 0.5) * VERTICAL_SCALE
        return offset_x, offset_y

    def estimate_gaze(self, landmarks: Landmarks) -> GazeDirection:
        """
        Estimate gaze direction from facial landmarks.

        Args:
            landmarks: Landmark vector (468 values for a MediaPipe face mesh)

        Returns:
            GazeDirection; UNKNOWN when no landmarks are provided
        """
        offsets = self.gaze_offsets(landmarks)
        if offsets is None:
            logger.debug("No usable landmarks; gaze unknown")
            return GazeDirection.UNKNOWN

        offset_x, offset_y = offsets
        direction = self.determine_gaze_direction(offset_x, offset_y)
        logger.debug("Gaze offset x=%.4f y=%.4f -> %s", offset_x, offset_y, direction.value)
        return direction

    @staticmethod
    def determine_gaze_direction(offset_x: float, offset_y: float) -> GazeDirection:
        """Threshold the two offsets and combine them into a direction."""
        horizontal = None
        if offset_x > GAZE_THRESHOLD_X:
            horizontal = GazeDirection.RIGHT
        elif offset_x < -GAZE_THRESHOLD_X:
            horizontal = GazeDirection.LEFT

        vertical = None
        if offset_y > GAZE_THRESHOLD_Y:
            vertical = GazeDirection.UP
        elif offset_y < -GAZE_THRESHOLD_Y:
            vertical = GazeDirection.DOWN

        return GazeDirection.combine(vertical, horizontal)

    def get_gaze_confidence(self, landmarks: Landmarks) -> float:
        """Confidence of the estimate (0-1): fixed 0.85 with landmarks, 0 without."""
        return 0.0 if _as_vector(landmarks).is_empty() else GAZE_CONFIDENCE
