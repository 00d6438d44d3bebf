"""
/**
 * @file dialect_backend/tests/test_health_controller.py
 * @description 状态接口、活动计数与限流测试。
 */
"""

import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from dialect_backend.config.settings import Settings
from dialect_backend.main import create_app
from dialect_backend.middleware.rate_limiter import FixedWindowLimiter
from dialect_backend.services.activity_service import ActivityTracker
from dialect_backend.services.keep_alive_service import KeepAliveScheduler, KeepAliveState
from dialect_backend.services.translation_service import DialectTranslator


class _Translator:
    is_configured = False

    async def translate(self, *args):
        return ""


def make_client(raw=None, public_url=None):
    app = create_app(
        settings=Settings(raw=raw or {}),
        translator=_Translator(),
        scheduler=KeepAliveScheduler(public_url),
        watch_config=False,
    )
    return TestClient(app), app


class TestStatusEndpoints(unittest.TestCase):
    def test_health(self):
        client, _ = make_client()
        body = client.get("/api/health").json()
        self.assertEqual(body["status"], "healthy")
        self.assertFalse(body["gemini_configured"])
        self.assertEqual(body["supported_dialects_count"], 7)
        self.assertFalse(body["keep_alive_active"])
        self.assertIn("memory_usage", body)

    def test_dialects(self):
        client, _ = make_client()
        body = client.get("/api/dialects").json()
        self.assertEqual(body["total_count"], 7)
        self.assertEqual(body["dialects"][0], {"code": "fukuoka", "name": "福岡弁"})

    def test_keep_alive_payload(self):
        client, _ = make_client()
        body = client.get("/api/keep-alive").json()
        self.assertEqual(body["status"], "alive")
        self.assertTrue(body["keep_alive_ping"])
        self.assertIn("uptime_seconds", body)
        self.assertIn("uptime_formatted", body)

    def test_stats_reports_keep_alive_config(self):
        client, _ = make_client(public_url="https://example.koyeb.app")
        stats = client.get("/api/stats").json()["server_stats"]
        self.assertEqual(stats["keep_alive"]["url"], "https://example.koyeb.app")
        self.assertTrue(stats["keep_alive"]["enabled"])
        self.assertFalse(stats["keep_alive"]["interval_active"])
        self.assertEqual(stats["keep_alive"]["state"], "idle")
        self.assertIn("rss_mb", stats["memory_usage"])

    def test_root_json_and_html(self):
        client, _ = make_client()
        body = client.get("/", headers={"Accept": "application/json"}).json()
        self.assertEqual(body["status"], "running")
        self.assertIn("POST /api/translate/batch", body["endpoints"])

        resp = client.get("/", headers={"Accept": "text/html"})
        self.assertEqual(resp.status_code, 200)
        self.assertIn("text/html", resp.headers["content-type"])

    def test_unknown_route_lists_endpoints(self):
        client, _ = make_client()
        resp = client.get("/api/nope")
        self.assertEqual(resp.status_code, 404)
        body = resp.json()
        self.assertEqual(body["requested_path"], "/api/nope")
        self.assertIn("GET /api/health", body["available_endpoints"])


class TestActivityAccounting(unittest.TestCase):
    def test_self_ping_never_counts(self):
        client, app = make_client()
        for _ in range(3):
            client.get("/api/keep-alive")
        self.assertEqual(app.state.activity.snapshot().activity_count, 0)

    def test_real_requests_count_exactly_once(self):
        client, app = make_client()
        client.get("/api/dialects")
        self.assertEqual(app.state.activity.snapshot().activity_count, 1)
        client.post("/api/translate", json={"text": "", "from": "standard", "to": "dialect", "dialect": "saga"})
        self.assertEqual(app.state.activity.snapshot().activity_count, 2)

    def test_tracker_snapshot(self):
        now = [1000.0]
        tracker = ActivityTracker(clock=lambda: now[0])
        tracker.record_activity()
        now[0] += 180
        snap = tracker.snapshot()
        self.assertEqual(snap.activity_count, 1)
        self.assertEqual(snap.last_activity_at, 1000.0)
        self.assertEqual(snap.minutes_since_last_activity, 3)


class TestLifespan(unittest.TestCase):
    def test_startup_arms_scheduler_and_shutdown_stops_everything(self):
        app = create_app(
            settings=Settings(raw={}),
            translator=_Translator(),
            scheduler=KeepAliveScheduler("https://example.koyeb.app", startup_delay=3600),
            watch_config=False,
        )
        with TestClient(app) as client:
            self.assertEqual(app.state.scheduler.state, KeepAliveState.SCHEDULED)
            self.assertFalse(app.state.reporter.done())
            self.assertEqual(client.get("/api/stats").json()["server_stats"]["keep_alive"]["state"], "scheduled")

        self.assertEqual(app.state.scheduler.state, KeepAliveState.STOPPED)
        self.assertTrue(app.state.reporter.done())

    def test_disabled_scheduler_stays_disabled(self):
        client, app = make_client()
        with client:
            self.assertEqual(app.state.scheduler.state, KeepAliveState.DISABLED)
        self.assertEqual(app.state.scheduler.state, KeepAliveState.DISABLED)
        self.assertTrue(app.state.reporter.done())

    def test_owned_translator_is_closed_on_shutdown(self):
        with patch.object(DialectTranslator, "close") as close:
            app = create_app(settings=Settings(raw={}), scheduler=KeepAliveScheduler(None), watch_config=False)
            with TestClient(app):
                close.assert_not_called()
        close.assert_called_once_with()
        self.assertEqual(app.state.translator.max_workers, 5)

    def test_injected_translator_is_left_open(self):
        translator = MagicMock(spec=DialectTranslator)
        translator.is_configured = False
        app = create_app(
            settings=Settings(raw={}),
            translator=translator,
            scheduler=KeepAliveScheduler(None),
            watch_config=False,
        )
        with TestClient(app):
            pass
        translator.close.assert_not_called()


class TestRateLimit(unittest.TestCase):
    def test_limit_applies_to_api_but_not_keep_alive(self):
        client, _ = make_client(raw={"rate_limit": {"max_requests": 2, "window_seconds": 900}})
        self.assertEqual(client.get("/api/dialects").status_code, 200)
        self.assertEqual(client.get("/api/health").status_code, 200)

        resp = client.get("/api/dialects")
        self.assertEqual(resp.status_code, 429)
        self.assertFalse(resp.json()["success"])

        for _ in range(5):
            self.assertEqual(client.get("/api/keep-alive").status_code, 200)

    def test_window_resets(self):
        now = [0.0]
        limiter = FixedWindowLimiter(1, 60, clock=lambda: now[0])
        self.assertTrue(limiter.hit("1.2.3.4"))
        self.assertFalse(limiter.hit("1.2.3.4"))
        self.assertTrue(limiter.hit("5.6.7.8"))
        now[0] = 61
        self.assertTrue(limiter.hit("1.2.3.4"))


if __name__ == "__main__":
    unittest.main()
