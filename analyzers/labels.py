"""
Closed label sets for the facial analysis pipeline.

Emotion, gaze and engagement values travel through the app and over the wire
as plain strings ("Happy", "down-left", "High"). These enums give them a closed
type inside the process; parse() maps free text onto a member and returns None
for anything outside the set so callers handle the unrecognized case explicitly.
"""

from enum import Enum
from typing import List, Optional, Union


class EmotionLabel(Enum):
    """Emotion labels, in the order the classifier cycles through them."""
    ANGRY = "Angry"
    DISGUST = "Disgust"
    FEAR = "Fear"
    HAPPY = "Happy"
    SAD = "Sad"
    SURPRISE = "Surprise"
    NEUTRAL = "Neutral"

    @classmethod
    def parse(cls, value: Union["EmotionLabel", str, None]) -> Optional["EmotionLabel"]:
        """
        Resolve a label case-insensitively.

        Args:
            value: EmotionLabel member or label text (e.g. "happy", "HAPPY").
                   Only case is ignored; " happy " is not a label.

        Returns:
            Matching EmotionLabel, or None if the text is not a known emotion
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return _EMOTION_BY_TEXT.get(value.lower())

    @classmethod
    def ordered(cls) -> List["EmotionLabel"]:
        return list(cls)


class GazeDirection(Enum):
    """Gaze directions produced by the gaze estimator."""
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    UP_LEFT = "up-left"
    UP_RIGHT = "up-right"
    DOWN_LEFT = "down-left"
    DOWN_RIGHT = "down-right"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union["GazeDirection", str, None]) -> Optional["GazeDirection"]:
        """Resolve a direction case-insensitively; None if not a known direction."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return _GAZE_BY_TEXT.get(value.lower())

    @classmethod
    def combine(
        cls,
        vertical: Optional["GazeDirection"],
        horizontal: Optional["GazeDirection"],
    ) -> "GazeDirection":
        """
        Join a vertical and a horizontal component into one direction.

        Both set gives "<vertical>-<horizontal>" (e.g. UP + LEFT -> UP_LEFT),
        one set gives that component, neither gives CENTER.
        """
        if vertical is not None and horizontal is not None:
            return cls(f"{vertical.value}-{horizontal.value}")
        if horizontal is not None:
            return horizontal
        if vertical is not None:
            return vertical
        return cls.CENTER


class EngagementState(Enum):
    """Engagement classification for a frame. UNKNOWN until an estimate has run."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Union["EngagementState", str, None]) -> Optional["EngagementState"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return _ENGAGEMENT_BY_TEXT.get(value.lower())


_EMOTION_BY_TEXT = {m.value.lower(): m for m in EmotionLabel}
_GAZE_BY_TEXT = {m.value: m for m in GazeDirection}
_ENGAGEMENT_BY_TEXT = {m.value.lower(): m for m in EngagementState}
