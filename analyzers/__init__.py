"""
Analyzers package for Cronos Facial.

This package contains the per-frame scoring pipeline: emotion classification,
gaze estimation, engagement estimation, and the face-mesh analyzer that runs
them in order.
"""

from .labels import EmotionLabel, GazeDirection, EngagementState
from .models import LandmarkVector, InteractionData, FaceSessionData, FrameAnalysis
from .emotion_analyzer import EmotionAnalyzer
from .gaze_estimator import GazeEstimator
from .engagement_estimator import EngagementEstimator
from .face_mesh_analyzer import FaceMeshAnalyzer, PlaceholderLandmarkSource

__all__ = [
    'EmotionLabel',
    'GazeDirection',
    'EngagementState',
    'LandmarkVector',
    'InteractionData',
    'FaceSessionData',
    'FrameAnalysis',
    'EmotionAnalyzer',
    'GazeEstimator',
    'EngagementEstimator',
    'FaceMeshAnalyzer',
    'PlaceholderLandmarkSource',
]
