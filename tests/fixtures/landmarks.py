"""
Landmark and HTTP response fixtures for the analyzer and service tests.

Landmark vectors are chosen for their sums, which is all the gaze estimator
looks at:
  placeholder (468 x 0.5, sum 234)  -> offset x -0.3, offset y just below -0.15 -> down-left
  [0.5]                             -> offset x 0.0, offset y 0.075           -> center
"""

import json
from unittest.mock import MagicMock

import numpy as np


def placeholder_landmarks(count: int = 468, fill: float = 0.5) -> np.ndarray:
    """Constant vector, as produced by the placeholder landmark source."""
    return np.full(count, fill, dtype=np.float64)


def mesh_landmarks(points: int = 468, fill: float = 0.5) -> np.ndarray:
    """(points, 3) array in MediaPipe layout; flattens to 3 * points values."""
    return np.full((points, 3), fill, dtype=np.float64)


CENTER_LANDMARKS = [0.5]

# sum 0.8 -> x (0.8 - 0.5) * 0.6 = 0.18 (right); y (0.04 - 0.5) * 0.5 = -0.23 (down)
DOWN_RIGHT_LANDMARKS = [0.8]


def make_response(status_code: int = 200, payload=None) -> MagicMock:
    """Stand-in for requests.Response with the attributes the services read."""
    response = MagicMock()
    response.status_code = status_code
    body = json.dumps(payload) if payload is not None else ""
    response.text = body
    response.content = body.encode("utf-8")
    response.json.return_value = payload
    return response
