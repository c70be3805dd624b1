"""
=============================================================================
CONFIGURATION FOR CRONOS FACIAL (config.py)
=============================================================================

WHAT THIS FILE DOES:
--------------------
Holds every configurable setting in one place. Values come from the
environment (or a .env file loaded by app.py); each has a safe default so the
service starts without any setup.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Backends      — Base URLs for the legacy API and the AI/ML analysis API.
  2. HTTP          — Request timeout and body logging.
  3. Tracking      — Capture interval, placeholder landmarks, buffering.
  4. Predictions   — Defaults for engagement prediction requests.
  5. Server        — Host, port, debug mode and log level.
=============================================================================
"""

import os
from typing import Any, Dict


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


# ============================================================================
# BACKENDS
# ============================================================================
# The legacy API receives face-session and engagement lists; the AI/ML API
# receives the per-frame stream, the end-of-session batch and prediction
# requests. Both usually live behind the same base URL.
# ----------------------------------------------------------------------------
PLACEHOLDER_API_BASE_URL = "https://your-ai-ml-backend.com/api/v1/"

API_BASE_URL: str = (os.getenv("API_BASE_URL") or PLACEHOLDER_API_BASE_URL).strip()
AIML_API_BASE_URL: str = (os.getenv("AIML_API_BASE_URL") or API_BASE_URL).strip()

# ============================================================================
# HTTP
# ============================================================================
# Single timeout for connect and read, in seconds. No retries are attempted.
HTTP_TIMEOUT_SEC: float = float(os.getenv("HTTP_TIMEOUT_SEC", "30"))
# When true, request and response bodies are logged at DEBUG level.
HTTP_BODY_LOGGING: bool = _env_bool("HTTP_BODY_LOGGING", "false")

# ============================================================================
# TRACKING
# ============================================================================
# Capture loop period (500 ms -> the emotion label changes about once per second).
FRAME_INTERVAL_MS: int = max(10, int(os.getenv("FRAME_INTERVAL_MS", "500")))
# Placeholder landmark vector: MediaPipe face mesh size, constant fill.
LANDMARK_COUNT: int = max(0, int(os.getenv("LANDMARK_COUNT", "468")))
PLACEHOLDER_LANDMARK_VALUE: float = float(os.getenv("PLACEHOLDER_LANDMARK_VALUE", "0.5"))
# Stream one data point to the AI/ML backend every N analyzed frames.
STREAM_BUFFER_SIZE: int = max(1, int(os.getenv("STREAM_BUFFER_SIZE", "10")))
# Upper bound on data points kept for the end-of-session batch.
SESSION_MAX_DATA_POINTS: int = max(1, int(os.getenv("SESSION_MAX_DATA_POINTS", "10000")))

# Metadata attached to every streamed data point
DEVICE_ID: str = os.getenv("DEVICE_ID", "python_host")
APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")
EMOTION_DETECTION_METHOD = "simulated_landmarks"

# ============================================================================
# PREDICTIONS
# ============================================================================
PREDICTION_CONTEXT: str = os.getenv("PREDICTION_CONTEXT", "general")
# 5 minutes of history
PREDICTION_TIME_WINDOW_MS: int = int(os.getenv("PREDICTION_TIME_WINDOW_MS", "300000"))

# ============================================================================
# Application Configuration
# ============================================================================
FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG: bool = _env_bool("FLASK_DEBUG", "false")
FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# ============================================================================
# Helper Functions
# ============================================================================

def warn_missing_config() -> None:
    """
    Print a warning when the backend URLs still point at the placeholder host.
    Call from app startup. Does not raise.
    """
    import sys
    missing = []
    if API_BASE_URL == PLACEHOLDER_API_BASE_URL:
        missing.append("API_BASE_URL")
    if AIML_API_BASE_URL == PLACEHOLDER_API_BASE_URL:
        missing.append("AIML_API_BASE_URL")
    if missing:
        print(
            "Config warning: the following env vars are not set; submissions will go to the placeholder backend:",
            ", ".join(missing),
            file=sys.stderr,
        )


def build_config_response() -> Dict[str, Any]:
    """
    Build the configuration response for GET /config/all.
    Only non-secret values are included.
    """
    return {
        "backends": {
            "apiBaseUrl": API_BASE_URL,
            "aimlApiBaseUrl": AIML_API_BASE_URL,
            "timeoutSec": HTTP_TIMEOUT_SEC,
        },
        "tracking": {
            "frameIntervalMs": FRAME_INTERVAL_MS,
            "landmarkCount": LANDMARK_COUNT,
            "streamBufferSize": STREAM_BUFFER_SIZE,
            "sessionMaxDataPoints": SESSION_MAX_DATA_POINTS,
            "emotionDetectionMethod": EMOTION_DETECTION_METHOD,
        },
        "predictions": {
            "context": PREDICTION_CONTEXT,
            "timeWindowMs": PREDICTION_TIME_WINDOW_MS,
        },
        "app": {
            "deviceId": DEVICE_ID,
            "appVersion": APP_VERSION,
        },
    }
