"""
Data records shared by the analyzers, the tracking session and the backend clients.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union

import numpy as np

from analyzers.labels import EmotionLabel, EngagementState, GazeDirection


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class LandmarkVector:
    """
    One frame's facial geometry as a flat, read-only float array.

    MediaPipe-style meshes have 468 points; the vector is whatever flat length the
    landmark source produced (a (468, 3) array is flattened). Values are nominally
    in [0, 1] but are not validated: downstream estimators are total over any input.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Union[Iterable[float], np.ndarray, None] = None):
        if values is None:
            arr = np.zeros(0, dtype=np.float64)
        elif isinstance(values, LandmarkVector):
            arr = values.values.copy()
        else:
            if not isinstance(values, np.ndarray):
                values = list(values)
            arr = np.asarray(values, dtype=np.float64).ravel().copy()
        arr.setflags(write=False)
        self._values = arr

    @classmethod
    def placeholder(cls, count: int = 468, fill: float = 0.5) -> "LandmarkVector":
        """Constant-filled vector standing in for a real face mesh."""
        return cls(np.full(max(0, int(count)), float(fill), dtype=np.float64))

    @property
    def values(self) -> np.ndarray:
        return self._values

    def is_empty(self) -> bool:
        return self._values.size == 0

    def total(self) -> float:
        return float(np.sum(self._values))

    def __len__(self) -> int:
        return int(self._values.size)

    def __iter__(self):
        return iter(self._values.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LandmarkVector):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return f"LandmarkVector(size={len(self)})"


@dataclass(frozen=True)
class InteractionData:
    """An exogenous user-interaction signal (tap, scroll, answer submitted...)."""
    interaction_type: str
    timestamp: int = field(default_factory=now_ms)  # epoch ms
    duration: Optional[float] = None  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "interactionType": self.interaction_type,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionData":
        """
        Build from a JSON body. Raises ValueError if interactionType is missing
        or duration is not a number.
        """
        itype = str(data.get("interactionType") or data.get("interaction_type") or "").strip()
        if not itype:
            raise ValueError("interactionType is required")
        duration = data.get("duration")
        if duration is not None:
            try:
                duration = float(duration)
            except (TypeError, ValueError):
                raise ValueError("duration must be a number")
        timestamp = data.get("timestamp")
        if timestamp is not None:
            try:
                timestamp = int(timestamp)
            except (TypeError, ValueError):
                raise ValueError("timestamp must be an integer (epoch ms)")
        return cls(
            interaction_type=itype,
            timestamp=timestamp if timestamp is not None else now_ms(),
            duration=duration,
        )


@dataclass(frozen=True)
class FaceSessionData:
    """Immutable per-frame record appended to the tracking session."""
    timestamp: int  # epoch ms
    emotion: EmotionLabel
    gaze: GazeDirection
    engagement: EngagementState

    @classmethod
    def create(
        cls,
        emotion: EmotionLabel,
        gaze: GazeDirection,
        engagement: EngagementState,
    ) -> "FaceSessionData":
        return cls(timestamp=now_ms(), emotion=emotion, gaze=gaze, engagement=engagement)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "emotion": self.emotion.value,
            "gaze": self.gaze.value,
            "engagement": self.engagement.value,
        }


@dataclass(frozen=True)
class FrameAnalysis:
    """Everything the pipeline derived from one frame."""
    emotion: EmotionLabel
    gaze: GazeDirection
    engagement: EngagementState
    emotion_confidence: float
    gaze_confidence: float
    metrics: Dict[str, float]
    landmark_count: int
    timestamp: int = field(default_factory=now_ms)

    def to_session_data(self) -> FaceSessionData:
        return FaceSessionData(
            timestamp=self.timestamp,
            emotion=self.emotion,
            gaze=self.gaze,
            engagement=self.engagement,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "emotion": self.emotion.value,
            "gaze": self.gaze.value,
            "engagement": self.engagement.value,
            "emotionConfidence": self.emotion_confidence,
            "gazeConfidence": self.gaze_confidence,
            "metrics": dict(self.metrics),
            "landmarkCount": self.landmark_count,
        }
