"""Tests for application wiring: health check, endpoint index, error envelopes and rate limiting."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from knowledgehub.api.rate_limit import RateLimiter, limiter
from knowledgehub.main import app
from support import ApiTestCase


class TestHealth(ApiTestCase):
    def test_healthy_database(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["database"]["status"], "healthy")
        self.assertEqual(body["database"]["missingTables"], [])
        self.assertIn("version", body)
        self.assertGreaterEqual(body["uptime"], 0)

    def test_missing_tables_degrade_to_503(self) -> None:
        with patch("knowledgehub.api.v1.health.find_missing_tables", return_value=["workflows"]):
            response = self.client.get("/health")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["database"]["status"], "degraded")

    def test_unreachable_database_is_unhealthy(self) -> None:
        with patch("knowledgehub.api.v1.health.check_db_connected", return_value=False):
            response = self.client.get("/health")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["database"]["status"], "unhealthy")


class TestEnvelopes(ApiTestCase):
    def test_api_index_lists_routes(self) -> None:
        body = self.client.get("/api").json()
        self.assertTrue(body["success"])
        self.assertIn("POST /api/notes", body["endpoints"]["notes"])
        self.assertIn("POST /api/auth/login", body["endpoints"]["auth"])
        self.assertIn("PUT /api/workflows/{workflow_id}/steps/{step_id}", body["endpoints"]["workflows"])
        self.assertNotIn("health", body["endpoints"])

    def test_unknown_endpoint(self) -> None:
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "Endpoint not found"})

    def test_unexpected_error_is_hidden(self) -> None:
        _, headers = self.viewer()
        client = TestClient(app, raise_server_exceptions=False)
        with patch(
            "knowledgehub.services.workflows.workflow_stats", side_effect=RuntimeError("boom")
        ):
            response = client.get("/api/workflows/stats/summary", headers=headers)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "Internal server error"})


class TestRateLimit(ApiTestCase):
    def test_exceeding_limit_returns_429_with_retry_after(self) -> None:
        with patch("knowledgehub.api.rate_limit.get_settings") as get_settings:
            get_settings.return_value.RATE_LIMIT_ENABLED = True
            get_settings.return_value.RATE_LIMIT_MAX = 2
            get_settings.return_value.RATE_LIMIT_WINDOW_SEC = 60
            statuses = [self.client.get("/api/notes/public").status_code for _ in range(3)]
            response = self.client.get("/api/notes/public")
        self.assertEqual(statuses, [200, 200, 429])
        self.assertEqual(response.status_code, 429)
        self.assertIn("Retry-After", response.headers)
        self.assertFalse(response.json()["success"])

    def test_health_is_not_rate_limited(self) -> None:
        with patch("knowledgehub.api.rate_limit.get_settings") as get_settings:
            get_settings.return_value.RATE_LIMIT_ENABLED = True
            get_settings.return_value.RATE_LIMIT_MAX = 1
            get_settings.return_value.RATE_LIMIT_WINDOW_SEC = 60
            statuses = [self.client.get("/health").status_code for _ in range(3)]
        self.assertEqual(statuses, [200, 200, 200])


class TestRateLimiter(unittest.TestCase):
    def test_window_slides(self) -> None:
        rl = RateLimiter()
        self.assertIsNone(rl.hit("ip", limit=2, window_seconds=10, now=0.0))
        self.assertIsNone(rl.hit("ip", limit=2, window_seconds=10, now=1.0))
        self.assertEqual(rl.hit("ip", limit=2, window_seconds=10, now=2.0), 8)
        self.assertIsNone(rl.hit("ip", limit=2, window_seconds=10, now=10.5))

    def test_keys_are_independent_and_reset_clears(self) -> None:
        rl = RateLimiter()
        rl.hit("a", limit=1, window_seconds=10, now=0.0)
        self.assertIsNone(rl.hit("b", limit=1, window_seconds=10, now=0.0))
        self.assertIsNotNone(rl.hit("a", limit=1, window_seconds=10, now=0.0))
        rl.reset()
        self.assertIsNone(rl.hit("a", limit=1, window_seconds=10, now=0.0))

    def test_idle_clients_are_forgotten(self) -> None:
        rl = RateLimiter()
        for i in range(1000):
            rl.hit(f"10.0.{i // 256}.{i % 256}", limit=5, window_seconds=1, now=0.0)
        self.assertEqual(rl.tracked_keys(), 1000)
        rl.hit("192.0.2.1", limit=5, window_seconds=1, now=100.0)
        self.assertEqual(rl.tracked_keys(), 1)

    def test_active_client_survives_sweep(self) -> None:
        rl = RateLimiter()
        rl.hit("busy", limit=2, window_seconds=10, now=5.0)
        rl.hit("busy", limit=2, window_seconds=10, now=12.0)
        rl.hit("other", limit=2, window_seconds=10, now=14.0)
        self.assertEqual(rl.tracked_keys(), 2)
        self.assertIsNotNone(rl.hit("busy", limit=2, window_seconds=10, now=14.5))

    def tearDown(self) -> None:
        limiter.reset()
