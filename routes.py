"""
Flask routes for Cronos Facial.

Handles the service banner, health and config, stateless scoring
(engagement and gaze), and the tracking session lifecycle
(start/stop/toggle/state/frame/interaction).
"""

from flask import Blueprint, request, jsonify
from typing import Optional
import numpy as np
import cv2
import config
from analyzers.engagement_estimator import EngagementEstimator
from analyzers.gaze_estimator import GazeEstimator
from analyzers.labels import EmotionLabel, GazeDirection, EngagementState
from analyzers.models import InteractionData, LandmarkVector


# Create a blueprint for better organization
api = Blueprint('api', __name__)

# Global tracking session instance (singleton).
# TrackingSession is imported lazily in _get_or_create_session so the scoring
# routes do not pull in the services layer.
tracking_session = None  # type: Optional["TrackingSession"]

# Stateless estimators shared by the /analysis routes
_engagement_estimator = EngagementEstimator()
_gaze_estimator = GazeEstimator()


def register_routes(app) -> None:
    """Attach the API blueprint to the Flask app."""
    app.register_blueprint(api)


def _get_or_create_session():
    global tracking_session
    if tracking_session is None:
        from tracking_session import TrackingSession
        tracking_session = TrackingSession()
    return tracking_session


def _parse_interaction(value) -> Optional[InteractionData]:
    """Interaction from a JSON value: None, an interaction type string, or an object."""
    if value is None:
        return None
    if isinstance(value, str):
        return InteractionData.from_dict({"interactionType": value})
    if isinstance(value, dict):
        return InteractionData.from_dict(value)
    raise ValueError("interaction must be a string or an object")


def _decode_frame(data: bytes):
    """Decode a JPEG/PNG body into a BGR array; None if it is not an image."""
    buf = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


# ============================================================================
# Service Routes
# ============================================================================

@api.route("/")
def index():
    """
    Service banner with the list of endpoints.

    Returns:
        JSON: {"service": "Cronos Facial", "version": "...", "endpoints": [...]}
    """
    return jsonify({
        "service": "Cronos Facial",
        "version": config.APP_VERSION,
        "endpoints": [
            "GET /health",
            "GET /config/all",
            "GET /analysis/labels",
            "POST /analysis/engagement",
            "POST /analysis/gaze",
            "POST /tracking/start",
            "POST /tracking/stop",
            "POST /tracking/toggle",
            "GET /tracking/state",
            "POST /tracking/frame",
            "POST /tracking/interaction",
            "DELETE /tracking/message",
            "DELETE /tracking/error",
        ],
    })


@api.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@api.route("/config/all", methods=["GET"])
def get_all_config():
    """
    Get all non-secret configuration in one endpoint.

    Returns:
        JSON: backends, tracking, predictions and app settings
    """
    return jsonify(config.build_config_response())


# ============================================================================
# Analysis Routes (stateless)
# ============================================================================

@api.route("/analysis/labels", methods=["GET"])
def get_labels():
    """Emotion labels in classifier order, gaze directions and engagement states."""
    return jsonify({
        "emotions": [e.value for e in EmotionLabel.ordered()],
        "gazeDirections": [g.value for g in GazeDirection],
        "engagementStates": [s.value for s in EngagementState],
    })


@api.route("/analysis/engagement", methods=["POST"])
def analyze_engagement():
    """
    Score engagement for one emotion/gaze pair.

    Request Body:
        {
            "emotion": "Happy",
            "gaze": "center",
            "interaction": optional "tap" or {"interactionType": "tap", "duration": 1.5}
        }

    Returns:
        JSON: {
            "engagement": "High",
            "metrics": {"emotionScore": 0.9, "gazeScore": 1.0, "interactionScore": 0.5, "overallScore": 0.86}
        }
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    data = request.get_json(silent=True) or {}
    emotion = data.get("emotion")
    gaze = data.get("gaze")
    if not isinstance(emotion, str) or not isinstance(gaze, str):
        return jsonify({"error": "emotion and gaze are required strings"}), 400

    try:
        interaction = _parse_interaction(data.get("interaction"))
    except ValueError as e:
        return jsonify({"error": "Invalid interaction", "details": str(e)}), 400

    try:
        metrics = _engagement_estimator.get_engagement_metrics(emotion, gaze, interaction)
        engagement = _engagement_estimator.estimate_engagement(emotion, gaze, interaction)
        return jsonify({
            "engagement": engagement.value,
            "metrics": metrics,
        })
    except Exception as e:
        return jsonify({
            "error": "Failed to estimate engagement",
            "details": str(e)
        }), 500


@api.route("/analysis/gaze", methods=["POST"])
def analyze_gaze():
    """
    Estimate gaze direction for a landmark vector.

    Request Body:
        {"landmarks": [0.5, 0.5, ...]}

    Returns:
        JSON: {"gaze": "down-left", "confidence": 0.85, "offsetX": -0.3, "offsetY": -0.15, "landmarkCount": 468}
        Offsets are null when the landmark vector is empty.
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    data = request.get_json(silent=True) or {}
    raw = data.get("landmarks", [])
    if not isinstance(raw, list):
        return jsonify({"error": "landmarks must be a list of numbers"}), 400
    try:
        landmarks = LandmarkVector(raw)
    except (TypeError, ValueError) as e:
        return jsonify({"error": "landmarks must be a list of numbers", "details": str(e)}), 400

    try:
        offsets = _gaze_estimator.gaze_offsets(landmarks)
        return jsonify({
            "gaze": _gaze_estimator.estimate_gaze(landmarks).value,
            "confidence": _gaze_estimator.get_gaze_confidence(landmarks),
            "offsetX": offsets[0] if offsets else None,
            "offsetY": offsets[1] if offsets else None,
            "landmarkCount": len(landmarks),
        })
    except Exception as e:
        return jsonify({
            "error": "Failed to estimate gaze",
            "details": str(e)
        }), 500


# ============================================================================
# Tracking Session Routes
# ============================================================================

@api.route("/tracking/start", methods=["POST"])
def start_tracking():
    """
    Start (or restart) the tracking session.

    Request Body (optional):
        {"autoCapture": true}  false analyzes only frames POSTed to /tracking/frame

    Returns:
        JSON: tracking state
    """
    data = request.get_json(silent=True) or {}
    auto_capture = data.get("autoCapture", True)
    if not isinstance(auto_capture, bool):
        return jsonify({"error": "autoCapture must be a boolean"}), 400

    try:
        session = _get_or_create_session()
        return jsonify(session.start_tracking(auto_capture=auto_capture).to_dict())
    except Exception as e:
        return jsonify({
            "error": "Failed to start tracking",
            "details": str(e)
        }), 500


@api.route("/tracking/stop", methods=["POST"])
def stop_tracking():
    """
    Stop tracking and submit the session.

    Request Body (optional):
        {"wait": true}  block until the submission finished

    Returns:
        JSON: tracking state (isLoading true while the submission runs)
    """
    if tracking_session is None:
        return jsonify({"error": "Tracking not started"}), 404

    data = request.get_json(silent=True) or {}
    wait = data.get("wait", False)
    if not isinstance(wait, bool):
        return jsonify({"error": "wait must be a boolean"}), 400

    try:
        return jsonify(tracking_session.stop_tracking(wait=wait).to_dict())
    except Exception as e:
        return jsonify({
            "error": "Failed to stop tracking",
            "details": str(e)
        }), 500


@api.route("/tracking/toggle", methods=["POST"])
def toggle_tracking():
    try:
        return jsonify(_get_or_create_session().toggle_tracking().to_dict())
    except Exception as e:
        return jsonify({
            "error": "Failed to toggle tracking",
            "details": str(e)
        }), 500


@api.route("/tracking/state", methods=["GET"])
def get_tracking_state():
    """
    Get the current tracking state.

    Returns:
        JSON: {
            "isTracking": true,
            "sessionData": [{"timestamp": ..., "emotion": "Angry", "gaze": "down-left", "engagement": "Medium"}],
            "engagementStates": [{"timestamp": ..., "state": "Medium"}],
            "latestEmotion": "Angry",
            "latestEngagement": "Medium",
            "message": null,
            "isLoading": false,
            "error": null
        }
    """
    if tracking_session is None:
        return jsonify({"error": "Tracking not started"}), 404
    return jsonify(tracking_session.get_state().to_dict())


@api.route("/tracking/frame", methods=["POST"])
def tracking_frame():
    """
    Analyze one frame in the running session.
    Body is an optional raw JPEG/PNG image; an empty body analyzes a frame without image data.

    Returns:
        JSON: frame analysis (emotion, gaze, engagement, confidences, metrics)
    """
    if tracking_session is None or not tracking_session.is_tracking:
        return jsonify({"error": "Tracking is not active"}), 409

    data = request.get_data()
    frame = None
    if data:
        frame = _decode_frame(data)
        if frame is None:
            return jsonify({"error": "Invalid or unsupported image"}), 400

    try:
        analysis = tracking_session.process_frame(frame)
    except Exception as e:
        return jsonify({"error": "Failed to process frame", "details": str(e)}), 500

    if analysis is None:
        if not tracking_session.is_tracking:
            return jsonify({"error": "Tracking is not active"}), 409
        return jsonify({"error": "Failed to process frame"}), 500
    return jsonify(analysis.to_dict())


@api.route("/tracking/interaction", methods=["POST"])
def tracking_interaction():
    """
    Record a user interaction; it is factored into the next analyzed frame.

    Request Body:
        {"interactionType": "tap", "duration": 1.5}
    """
    if tracking_session is None or not tracking_session.is_tracking:
        return jsonify({"error": "Tracking is not active"}), 409
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    try:
        interaction = InteractionData.from_dict(request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"error": "Invalid interaction", "details": str(e)}), 400

    tracking_session.record_interaction(interaction)
    return jsonify({"success": True, "interaction": interaction.to_dict()})


@api.route("/tracking/message", methods=["DELETE"])
def clear_tracking_message():
    if tracking_session is None:
        return jsonify({"error": "Tracking not started"}), 404
    tracking_session.clear_message()
    return "", 204


@api.route("/tracking/error", methods=["DELETE"])
def clear_tracking_error():
    if tracking_session is None:
        return jsonify({"error": "Tracking not started"}), 404
    tracking_session.clear_error()
    return "", 204
