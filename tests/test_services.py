"""
Service layer tests.

Tests the backend client, API service, AI/ML service and lazy initialization.
HTTP is mocked; no backend required.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
from unittest.mock import patch, MagicMock

import requests


def _stream_args():
    from analyzers.labels import EmotionLabel, GazeDirection, EngagementState
    from services.payloads import FacialLandmark
    return (
        [FacialLandmark.face_center()],
        EmotionLabel.HAPPY,
        GazeDirection.CENTER,
        EngagementState.HIGH,
        0.8,
    )


class TestBackendClient(unittest.TestCase):
    """Test URL handling and error translation."""

    def test_rejects_non_http_url(self):
        """BackendClient should reject URLs without http(s) scheme."""
        from services.backend_client import BackendClient
        with self.assertRaises(ValueError):
            BackendClient("ftp://example.com")
        with self.assertRaises(ValueError):
            BackendClient("")

    def test_url_join(self):
        """Base URL should be normalized to a trailing slash."""
        from services.backend_client import BackendClient
        client = BackendClient("https://api.example.com/v1")
        self.assertEqual(client.url_for("facial-analysis/stream"), "https://api.example.com/v1/facial-analysis/stream")
        self.assertEqual(client.url_for("/engagement"), "https://api.example.com/v1/engagement")

    @patch("services.backend_client.requests.post")
    def test_post_json_sends_json(self, mock_post):
        """post_json should POST JSON with headers and timeout."""
        from services.backend_client import BackendClient
        from tests.fixtures.landmarks import make_response
        mock_post.return_value = make_response(201, {"ok": True})
        client = BackendClient("https://api.example.com/", timeout=5)
        response = client.post_json("engagement", [{"timestamp": 1, "state": "High"}])
        self.assertEqual(response.status_code, 201)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://api.example.com/engagement")
        self.assertEqual(kwargs["json"], [{"timestamp": 1, "state": "High"}])
        self.assertEqual(kwargs["timeout"], 5.0)
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/json")

    @patch("services.backend_client.requests.post")
    def test_timeout_is_reported_with_url(self, mock_post):
        """Timeouts should surface as RequestException naming the endpoint."""
        from services.backend_client import BackendClient
        mock_post.side_effect = requests.Timeout("read timed out")
        client = BackendClient("https://api.example.com/", timeout=2)
        with self.assertRaises(requests.RequestException) as ctx:
            client.post_json("face-sessions", [])
        self.assertIn("timed out", str(ctx.exception))
        self.assertIn("https://api.example.com/face-sessions", str(ctx.exception))

    @patch("services.backend_client.requests.post")
    def test_connection_error_is_reported_with_url(self, mock_post):
        """Connection errors should surface as RequestException naming the endpoint."""
        from services.backend_client import BackendClient
        mock_post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(requests.RequestException) as ctx:
            BackendClient("http://localhost:1/").post_json("engagement", [])
        self.assertIn("Connection error", str(ctx.exception))

    def test_is_successful(self):
        """Only 2xx should count as success."""
        from services.backend_client import is_successful
        from tests.fixtures.landmarks import make_response
        self.assertTrue(is_successful(make_response(200)))
        self.assertTrue(is_successful(make_response(204)))
        self.assertFalse(is_successful(make_response(302)))
        self.assertFalse(is_successful(make_response(500)))


class TestApiService(unittest.TestCase):
    """Test endpoint routing and payload shapes."""

    def setUp(self):
        from services.api_service import ApiService
        self.legacy = MagicMock()
        self.aiml = MagicMock()
        self.api = ApiService(legacy_client=self.legacy, aiml_client=self.aiml)

    def test_submit_face_session(self):
        """submit_face_session should post a list of records to face-sessions."""
        from analyzers.labels import EmotionLabel, GazeDirection, EngagementState
        from analyzers.models import FaceSessionData
        record = FaceSessionData(1000, EmotionLabel.HAPPY, GazeDirection.DOWN_LEFT, EngagementState.MEDIUM)
        self.api.submit_face_session([record])
        self.legacy.post_json.assert_called_once_with(
            "face-sessions",
            [{"timestamp": 1000, "emotion": "Happy", "gaze": "down-left", "engagement": "Medium"}],
        )

    def test_submit_engagement(self):
        """submit_engagement should post {timestamp, state} records to engagement."""
        from analyzers.labels import EngagementState
        from services.payloads import EngagementData
        self.api.submit_engagement([EngagementData(5, EngagementState.LOW)])
        self.legacy.post_json.assert_called_once_with("engagement", [{"timestamp": 5, "state": "Low"}])

    def test_stream_uses_aiml_backend(self):
        """stream_facial_data should go to the AI/ML client."""
        from services.aiml_service import AiMlService
        data = AiMlService(api=self.api).build_facial_data("s1", *_stream_args())
        self.api.stream_facial_data(data)
        path, payload = self.aiml.post_json.call_args[0]
        self.assertEqual(path, "facial-analysis/stream")
        self.assertEqual(payload["sessionId"], "s1")
        self.assertEqual(payload["landmarks"][0]["landmarkType"], "face_center")
        self.assertEqual(payload["emotions"]["primaryEmotion"], "Happy")
        self.assertEqual(payload["emotions"]["emotionScores"]["Happy"], 0.85)
        self.assertEqual(payload["gaze"], {"direction": "center", "confidence": 0.8, "eyeOpenness": 0.8})
        self.assertEqual(payload["engagement"], "High")
        self.assertEqual(payload["metadata"]["emotionDetectionMethod"], "simulated_landmarks")
        self.legacy.post_json.assert_not_called()

    def test_get_api_service_returns_singleton(self):
        """get_api_service should return same instance on subsequent calls."""
        import services.api_service as mod
        mod._api_service = None
        a = mod.get_api_service()
        b = mod.get_api_service()
        self.assertIs(a, b)


class TestAiMlService(unittest.TestCase):
    """Test session lifecycle, stream buffering and batch submission."""

    def setUp(self):
        from services.aiml_service import AiMlService
        from tests.fixtures.landmarks import make_response
        self.api = MagicMock()
        self.api.stream_facial_data.return_value = make_response(200, {
            "success": True,
            "insights": ["User shows low engagement"],
            "recommendations": ["Take a break"],
        })
        self.api.submit_batch_analysis.return_value = make_response(200, {
            "success": True,
            "sessionInsights": {"averageEngagement": 64.5, "engagementTrend": "increasing"},
        })
        self.service = AiMlService(api=self.api, buffer_size=3)

    def test_start_session_issues_new_id(self):
        """start_session should return a fresh id each time."""
        a = self.service.start_session()
        b = self.service.start_session()
        self.assertTrue(a)
        self.assertNotEqual(a, b)
        self.assertEqual(self.service.session_id, b)

    def test_stream_posts_every_buffer_size_frames(self):
        """One post per buffer_size frames, carrying the latest frame."""
        self.service.start_session()
        for _ in range(2):
            self.assertIsNone(self.service.stream_facial_data(*_stream_args()))
        self.api.stream_facial_data.assert_not_called()

        result = self.service.stream_facial_data(*_stream_args())
        self.assertIsNotNone(result)
        self.assertEqual(self.api.stream_facial_data.call_count, 1)
        sent = self.api.stream_facial_data.call_args[0][0]
        self.assertIs(sent, self.service.get_session_data()[-1])

        for _ in range(3):
            self.service.stream_facial_data(*_stream_args())
        self.assertEqual(self.api.stream_facial_data.call_count, 2)

    def test_stream_starts_session_when_missing(self):
        """Streaming without a session should open one."""
        self.assertIsNone(self.service.session_id)
        self.service.stream_facial_data(*_stream_args())
        self.assertIsNotNone(self.service.session_id)

    def test_analysis_result_flags_low_engagement(self):
        """An insight mentioning low engagement should set the flag."""
        self.service.start_session()
        for _ in range(3):
            self.service.stream_facial_data(*_stream_args())
        self.assertTrue(self.service.low_engagement_flagged)
        self.assertEqual(self.service.last_analysis.recommendations, ["Take a break"])

    def test_stream_failure_returns_none(self):
        """Network errors during streaming should be swallowed."""
        self.api.stream_facial_data.side_effect = requests.RequestException("down")
        self.service.start_session()
        results = [self.service.stream_facial_data(*_stream_args()) for _ in range(3)]
        self.assertEqual(results, [None, None, None])
        self.assertEqual(len(self.service.get_session_data()), 3)

    def test_stream_http_error_returns_none(self):
        """Non-2xx stream responses should yield None."""
        from tests.fixtures.landmarks import make_response
        self.api.stream_facial_data.return_value = make_response(503)
        self.service.start_session()
        results = [self.service.stream_facial_data(*_stream_args()) for _ in range(3)]
        self.assertIsNone(results[-1])

    def test_batch_covers_whole_session(self):
        """Batch should contain every frame, with first/last timestamps."""
        self.service.start_session()
        for _ in range(5):
            self.service.stream_facial_data(*_stream_args())
        points = self.service.get_session_data()

        result = self.service.submit_batch_analysis()
        self.assertEqual(result.session_insights.average_engagement, 64.5)
        self.assertEqual(result.session_insights.engagement_trend, "increasing")
        batch = self.api.submit_batch_analysis.call_args[0][0]
        self.assertEqual(len(batch.data_points), 5)
        self.assertEqual(batch.start_time, points[0].timestamp)
        self.assertEqual(batch.end_time, points[-1].timestamp)

    def test_batch_with_no_data_posts_nothing(self):
        """Empty session should not post a batch."""
        self.service.start_session()
        self.assertIsNone(self.service.submit_batch_analysis())
        self.api.submit_batch_analysis.assert_not_called()

    def test_end_session_clears_state(self):
        """end_session should submit and then close the session."""
        self.service.start_session()
        self.service.stream_facial_data(*_stream_args())
        result = self.service.end_session()
        self.assertIsNotNone(result)
        self.assertIsNone(self.service.session_id)
        self.assertEqual(self.service.get_session_data(), [])

    def test_close_session_detaches_points(self):
        """close_session should return the session and leave none open."""
        session_id = self.service.start_session()
        for _ in range(2):
            self.service.stream_facial_data(*_stream_args())
        closed = self.service.close_session()
        self.assertEqual(closed.session_id, session_id)
        self.assertEqual(len(closed.data_points), 2)
        self.assertIsNone(self.service.session_id)
        self.assertEqual(self.service.get_session_data(), [])

    def test_end_closed_session_leaves_current_session(self):
        """Ending a detached session should batch its own points only."""
        old_id = self.service.start_session()
        for _ in range(2):
            self.service.stream_facial_data(*_stream_args())
        closed = self.service.close_session()

        new_id = self.service.start_session()
        self.service.stream_facial_data(*_stream_args())

        result = self.service.end_session(closed)
        self.assertIsNotNone(result)
        batch = self.api.submit_batch_analysis.call_args[0][0]
        self.assertEqual(batch.session_id, old_id)
        self.assertEqual(len(batch.data_points), 2)
        self.assertEqual(self.service.session_id, new_id)
        self.assertEqual(len(self.service.get_session_data()), 1)

    def test_counters_under_concurrent_streams(self):
        """frames_streamed should count every posted frame across threads."""
        import threading
        self.service.start_session()

        def stream():
            for _ in range(30):
                self.service.stream_facial_data(*_stream_args())

        threads = [threading.Thread(target=stream) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(self.service.frames_streamed, 120)
        self.assertTrue(self.service.low_engagement_flagged)

    def test_start_session_resets_flags(self):
        """A new session should clear the analysis flag and counters."""
        self.service.start_session()
        for _ in range(3):
            self.service.stream_facial_data(*_stream_args())
        self.service.start_session()
        self.assertFalse(self.service.low_engagement_flagged)
        self.assertIsNone(self.service.last_analysis)
        self.assertEqual(self.service.frames_streamed, 0)

    def test_session_points_are_capped(self):
        """Recorded points should not exceed max_data_points."""
        from services.aiml_service import AiMlService
        service = AiMlService(api=self.api, buffer_size=100, max_data_points=4)
        service.start_session()
        for _ in range(10):
            service.stream_facial_data(*_stream_args())
        self.assertEqual(len(service.get_session_data()), 4)

    def test_engagement_prediction(self):
        """get_engagement_prediction should post the request and parse the prediction."""
        from tests.fixtures.landmarks import make_response
        self.api.get_engagement_prediction.return_value = make_response(200, {
            "predictedEngagement": "Medium",
            "confidence": 0.7,
            "factors": ["gaze"],
        })
        self.service.start_session()
        self.service.stream_facial_data(*_stream_args())
        prediction = self.service.get_engagement_prediction(context="lecture")
        self.assertEqual(prediction.predicted_engagement.value, "Medium")
        self.assertEqual(prediction.factors, ["gaze"])
        request = self.api.get_engagement_prediction.call_args[0][0]
        self.assertEqual(request.current_context, "lecture")
        self.assertEqual(request.time_window, 300000)
        self.assertEqual(len(request.historical_data), 1)

    def test_prediction_failure_returns_none(self):
        """Prediction errors should yield None."""
        self.api.get_engagement_prediction.side_effect = requests.RequestException("down")
        self.assertIsNone(self.service.get_engagement_prediction([]))

    def test_get_aiml_service_returns_singleton(self):
        """get_aiml_service should return same instance on subsequent calls."""
        import services.aiml_service as mod
        mod._aiml_service = None
        self.assertIs(mod.get_aiml_service(), mod.get_aiml_service())


class TestPayloadParsing(unittest.TestCase):
    """Test lenient response parsing."""

    def test_missing_fields_take_defaults(self):
        """Empty response bodies should parse to defaults."""
        from services.payloads import AnalysisResult, BatchAnalysisResult, EngagementPrediction
        self.assertEqual(AnalysisResult.from_dict({}).insights, [])
        self.assertEqual(BatchAnalysisResult.from_dict({}).session_insights.engagement_trend, "stable")
        self.assertEqual(EngagementPrediction.from_dict({}).predicted_engagement.value, "Unknown")

    def test_batch_trends(self):
        """Trend entries should parse values and timestamps."""
        from services.payloads import BatchAnalysisResult
        result = BatchAnalysisResult.from_dict({
            "success": True,
            "trends": [{"metric": "engagement", "values": [0.5, "0.7"], "timestamps": [1, 2]}, "bad"],
        })
        self.assertEqual(len(result.trends), 1)
        self.assertEqual(result.trends[0].values, [0.5, 0.7])
        self.assertEqual(result.trends[0].timestamps, [1, 2])


class TestConfig(unittest.TestCase):
    """Test configuration helpers."""

    def test_build_config_response_sections(self):
        """build_config_response should expose the four sections."""
        import config
        data = config.build_config_response()
        self.assertEqual(set(data), {"backends", "tracking", "predictions", "app"})
        self.assertEqual(data["tracking"]["emotionDetectionMethod"], "simulated_landmarks")


if __name__ == "__main__":
    unittest.main()
