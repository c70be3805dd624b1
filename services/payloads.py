"""
Wire payloads for the legacy and AI/ML backends.

Requests serialize with to_dict() into the camelCase JSON the backends expect.
Responses are parsed with from_dict(), which tolerates missing fields (they
take empty defaults) because the backends are not strict about optional keys.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from analyzers.labels import EngagementState


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _engagement(value: Any) -> EngagementState:
    return EngagementState.parse(value) or EngagementState.UNKNOWN


# ----------------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class EngagementData:
    timestamp: int
    state: EngagementState

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "state": self.state.value}


@dataclass(frozen=True)
class FacialLandmark:
    x: float
    y: float
    z: float
    confidence: float
    landmark_type: str

    @classmethod
    def face_center(cls, confidence: float = 0.8) -> "FacialLandmark":
        """Single summary landmark sent in place of the full mesh."""
        return cls(x=0.5, y=0.5, z=0.0, confidence=confidence, landmark_type="face_center")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "confidence": self.confidence,
            "landmarkType": self.landmark_type,
        }


@dataclass(frozen=True)
class EmotionData:
    primary_emotion: str
    confidence: float
    emotion_scores: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primaryEmotion": self.primary_emotion,
            "confidence": self.confidence,
            "emotionScores": dict(self.emotion_scores),
        }


@dataclass(frozen=True)
class GazeData:
    direction: str
    confidence: float
    eye_openness: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction,
            "confidence": self.confidence,
            "eyeOpenness": self.eye_openness,
        }


@dataclass(frozen=True)
class FacialAnalysisData:
    """One analyzed frame as streamed to the AI/ML backend."""
    session_id: str
    timestamp: int
    landmarks: List[FacialLandmark]
    emotions: EmotionData
    gaze: GazeData
    engagement: EngagementState
    confidence: float
    metadata: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "landmarks": [lm.to_dict() for lm in self.landmarks],
            "emotions": self.emotions.to_dict(),
            "gaze": self.gaze.to_dict(),
            "engagement": self.engagement.value,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class BatchFacialData:
    session_id: str
    start_time: int
    end_time: int
    data_points: List[FacialAnalysisData]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "dataPoints": [p.to_dict() for p in self.data_points],
        }


@dataclass(frozen=True)
class EngagementPredictionRequest:
    historical_data: List[FacialAnalysisData]
    current_context: str
    time_window: int  # ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "historicalData": [p.to_dict() for p in self.historical_data],
            "currentContext": self.current_context,
            "timeWindow": self.time_window,
        }


# ----------------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------------

@dataclass
class AnalysisResult:
    success: bool = False
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    next_action: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            success=bool(data.get("success", False)),
            insights=_str_list(data.get("insights")),
            recommendations=_str_list(data.get("recommendations")),
            next_action=data.get("nextAction"),
        )


@dataclass
class SessionInsights:
    average_engagement: float = 0.0
    engagement_trend: str = "stable"  # "increasing" | "decreasing" | "stable"
    attention_spans: List[int] = field(default_factory=list)
    distraction_events: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionInsights":
        spans = data.get("attentionSpans")
        return cls(
            average_engagement=_float(data.get("averageEngagement")),
            engagement_trend=str(data.get("engagementTrend") or "stable"),
            attention_spans=[int(_float(s)) for s in spans] if isinstance(spans, list) else [],
            distraction_events=int(_float(data.get("distractionEvents"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "averageEngagement": self.average_engagement,
            "engagementTrend": self.engagement_trend,
            "attentionSpans": list(self.attention_spans),
            "distractionEvents": self.distraction_events,
        }


@dataclass
class TrendData:
    metric: str = ""
    values: List[float] = field(default_factory=list)
    timestamps: List[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendData":
        values = data.get("values")
        timestamps = data.get("timestamps")
        return cls(
            metric=str(data.get("metric") or ""),
            values=[_float(v) for v in values] if isinstance(values, list) else [],
            timestamps=[int(_float(t)) for t in timestamps] if isinstance(timestamps, list) else [],
        )


@dataclass
class BatchAnalysisResult:
    success: bool = False
    session_insights: SessionInsights = field(default_factory=SessionInsights)
    trends: List[TrendData] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchAnalysisResult":
        insights = data.get("sessionInsights")
        trends = data.get("trends")
        return cls(
            success=bool(data.get("success", False)),
            session_insights=SessionInsights.from_dict(insights if isinstance(insights, dict) else {}),
            trends=[TrendData.from_dict(t) for t in trends if isinstance(t, dict)] if isinstance(trends, list) else [],
        )


@dataclass
class EngagementPrediction:
    predicted_engagement: EngagementState = EngagementState.UNKNOWN
    confidence: float = 0.0
    factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngagementPrediction":
        return cls(
            predicted_engagement=_engagement(data.get("predictedEngagement")),
            confidence=_float(data.get("confidence")),
            factors=_str_list(data.get("factors")),
            recommendations=_str_list(data.get("recommendations")),
        )
