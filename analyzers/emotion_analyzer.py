"""
Emotion Analyzer Module

Assigns one of seven emotion labels to a frame. There is no trained model yet:
the label advances through EmotionLabel in order, changing every second call,
so a 500 ms capture loop shows a new emotion roughly once per second. The
landmarks are accepted (and logged) but do not influence the label.
"""

import logging
import threading
from typing import Dict, Sequence, Tuple, Union

import numpy as np

from analyzers.labels import EmotionLabel
from analyzers.models import LandmarkVector

logger = logging.getLogger(__name__)

EMOTION_LABELS = EmotionLabel.ordered()

# Fixed confidence reported for the simulated classifier
PRIMARY_CONFIDENCE = 0.85
SECONDARY_CONFIDENCE = 0.05

# Number of consecutive calls that return the same label
CALLS_PER_LABEL = 2

Landmarks = Union[LandmarkVector, Sequence[float], np.ndarray]


def emotion_score_distribution(primary: EmotionLabel) -> Dict[str, float]:
    """
    Per-label scores for an already chosen emotion: 0.85 for the primary label,
    0.05 for every other one. Keys are label strings, in cycle order.
    """
    return {
        label.value: (PRIMARY_CONFIDENCE if label is primary else SECONDARY_CONFIDENCE)
        for label in EMOTION_LABELS
    }


class EmotionAnalyzer:
    """
    Round-robin emotion classifier.

    Each instance owns its call counter, so independent sessions never share a
    cycle. The counter is guarded by a lock; concurrent callers each get a
    distinct position in the cycle.

    Usage:
        analyzer = EmotionAnalyzer()
        label = analyzer.predict_emotion(landmarks)
    """

    def __init__(self):
        self._call_count = 0
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return self._call_count

    def _next_label(self) -> Tuple[int, EmotionLabel]:
        with self._lock:
            position = self._call_count
            self._call_count += 1
        index = (position // CALLS_PER_LABEL) % len(EMOTION_LABELS)
        return position + 1, EMOTION_LABELS[index]

    def predict_emotion(self, landmarks: Landmarks) -> EmotionLabel:
        """
        Predict the emotion for one frame.

        Args:
            landmarks: Landmark vector for the frame (content is not used)

        Returns:
            EmotionLabel; never raises, even for empty or malformed input
        """
        call_number, emotion = self._next_label()
        logger.debug(
            "Predicting emotion from %d landmarks (call %d): %s",
            _safe_len(landmarks), call_number, emotion.value,
        )
        return emotion

    def predict_emotion_with_confidence(self, landmarks: Landmarks) -> Tuple[EmotionLabel, float]:
        """Predict the emotion and pair it with the fixed simulated confidence."""
        return self.predict_emotion(landmarks), PRIMARY_CONFIDENCE

    def predict_all_emotion_scores(self, landmarks: Landmarks) -> Dict[str, float]:
        """Predict the emotion and return the score for every label."""
        return emotion_score_distribution(self.predict_emotion(landmarks))


def _safe_len(landmarks) -> int:
    try:
        return len(landmarks)
    except TypeError:
        return 0
