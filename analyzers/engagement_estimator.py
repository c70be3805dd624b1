"""
Engagement Estimator Module

Combines the per-frame emotion, gaze direction and (optional) user interaction
into one engagement state.

The scoring system:
- Each factor maps to a score in [0, 1] through a fixed table
- The three factor scores are combined with fixed weights (0.4 / 0.4 / 0.2)
- The combined score is banded: >= 0.7 High, >= 0.4 Medium, otherwise Low

Labels outside the known sets are not errors; they take an explicit neutral
score of 0.5 so a stray string degrades the estimate instead of failing it.
The estimator is a pure function of its inputs and is safe to share between
threads.
"""

import logging
from typing import Dict, Optional, Union

from analyzers.labels import EmotionLabel, EngagementState, GazeDirection
from analyzers.models import InteractionData

logger = logging.getLogger(__name__)

EMOTION_WEIGHT = 0.4
GAZE_WEIGHT = 0.4
INTERACTION_WEIGHT = 0.2

HIGH_THRESHOLD = 0.7
MEDIUM_THRESHOLD = 0.4

# Score for a label that is not in the emotion or gaze set
UNRECOGNIZED_FACTOR_SCORE = 0.5

NO_INTERACTION_SCORE = 0.5
# Interaction content (type, duration, recency) is not scored yet
INTERACTION_PRESENT_SCORE = 0.7

EMOTION_SCORES: Dict[EmotionLabel, float] = {
    EmotionLabel.HAPPY: 1.0,
    EmotionLabel.SURPRISE: 0.9,
    EmotionLabel.NEUTRAL: 0.6,
    EmotionLabel.ANGRY: 0.4,
    EmotionLabel.FEAR: 0.3,
    EmotionLabel.SAD: 0.2,
    EmotionLabel.DISGUST: 0.1,
}

GAZE_SCORES: Dict[GazeDirection, float] = {
    GazeDirection.CENTER: 1.0,
    GazeDirection.LEFT: 0.6,
    GazeDirection.RIGHT: 0.6,
    GazeDirection.UP: 0.5,
    GazeDirection.DOWN: 0.3,
    GazeDirection.UP_LEFT: 0.5,
    GazeDirection.UP_RIGHT: 0.5,
    GazeDirection.DOWN_LEFT: 0.3,
    GazeDirection.DOWN_RIGHT: 0.3,
    GazeDirection.UNKNOWN: 0.4,
}

EmotionInput = Union[EmotionLabel, str]
GazeInput = Union[GazeDirection, str]


def emotion_score(emotion: EmotionInput) -> float:
    """Engagement contribution of an emotion (0-1)."""
    label = EmotionLabel.parse(emotion)
    if label is None:
        logger.debug("Unrecognized emotion %r; using neutral score", emotion)
        return UNRECOGNIZED_FACTOR_SCORE
    return EMOTION_SCORES[label]


def gaze_score(gaze: GazeInput) -> float:
    """Engagement contribution of a gaze direction (0-1)."""
    direction = GazeDirection.parse(gaze)
    if direction is None:
        logger.debug("Unrecognized gaze %r; using neutral score", gaze)
        return UNRECOGNIZED_FACTOR_SCORE
    return GAZE_SCORES[direction]


def interaction_score(interaction: Optional[InteractionData]) -> float:
    """Engagement contribution of the latest interaction (0-1)."""
    if interaction is None:
        return NO_INTERACTION_SCORE
    return INTERACTION_PRESENT_SCORE


def state_for_score(score: float) -> EngagementState:
    """
    Band a combined score into an engagement state.

    High is checked first, so a score of exactly 0.7 is High and exactly 0.4
    is Medium.
    """
    if score >= HIGH_THRESHOLD:
        return EngagementState.HIGH
    elif score >= MEDIUM_THRESHOLD:
        return EngagementState.MEDIUM
    else:
        return EngagementState.LOW


class EngagementEstimator:
    """
    Estimates user engagement from emotion, gaze and interaction.

    Usage:
        estimator = EngagementEstimator()
        state = estimator.estimate_engagement("Happy", "center")
        metrics = estimator.get_engagement_metrics("Happy", "center")
    """

    def get_engagement_metrics(
        self,
        emotion: EmotionInput,
        gaze: GazeInput,
        interaction: Optional[InteractionData] = None,
    ) -> Dict[str, float]:
        """
        Detailed engagement breakdown.

        Args:
            emotion: Detected emotion (EmotionLabel or label text)
            gaze: Estimated gaze direction (GazeDirection or direction text)
            interaction: Latest interaction, or None if there was none

        Returns:
            dict with emotionScore, gazeScore, interactionScore and overallScore;
            overallScore is the value estimate_engagement() bands
        """
        e = emotion_score(emotion)
        g = gaze_score(gaze)
        i = interaction_score(interaction)
        overall = (
            e * EMOTION_WEIGHT
            + g * GAZE_WEIGHT
            + i * INTERACTION_WEIGHT
        )
        return {
            "emotionScore": e,
            "gazeScore": g,
            "interactionScore": i,
            "overallScore": overall,
        }

    def estimate_engagement(
        self,
        emotion: EmotionInput,
        gaze: GazeInput,
        interaction: Optional[InteractionData] = None,
    ) -> EngagementState:
        """
        Estimate the engagement state for one frame.

        Args:
            emotion: Detected emotion (EmotionLabel or label text)
            gaze: Estimated gaze direction (GazeDirection or direction text)
            interaction: Latest interaction, or None if there was none

        Returns:
            EngagementState.HIGH, MEDIUM or LOW
        """
        metrics = self.get_engagement_metrics(emotion, gaze, interaction)
        state = state_for_score(metrics["overallScore"])
        logger.debug(
            "Engagement scores - emotion: %.2f, gaze: %.2f, interaction: %.2f, total: %.3f -> %s",
            metrics["emotionScore"], metrics["gazeScore"], metrics["interactionScore"],
            metrics["overallScore"], state.value,
        )
        return state
