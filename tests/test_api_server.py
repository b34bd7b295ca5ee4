import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from databank import api_server
from databank.corpus import DirectoryCatalog
from databank.errors import ConfigurationError
from databank.metrics import MetricsCollector
from databank.quota import QuotaGovernor
from databank.service import QUOTA_EXHAUSTED_MESSAGE, QuestionAnsweringService


class _StaticBackend:
    def __init__(self, reply: str = "Roll call is at 8:30.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.reply


class TestApiServer(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        corpus = root / "topics"
        corpus.mkdir()
        (corpus / "Attendance.md").write_text("Roll call happens at 8:30.", encoding="utf-8")

        self.quota = QuotaGovernor(limit=2, clock=lambda: datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc))
        self.backend = _StaticBackend()
        self.service = QuestionAnsweringService(
            quota=self.quota,
            catalog=DirectoryCatalog(corpus, extensions=(".md",)),
            backend_provider=lambda: self.backend,
        )
        self.metrics = MetricsCollector(root / "metrics")

        self._patches = [
            patch.dict(api_server._state, {"service": self.service}),
            patch.object(api_server, "metrics_collector", self.metrics),
        ]
        for p in self._patches:
            p.start()
        self.client = TestClient(api_server.app)

    def tearDown(self):
        for p in reversed(self._patches):
            p.stop()
        self.tmp.cleanup()

    def test_get_reports_quota_without_side_effects(self):
        for _ in range(3):
            response = self.client.get("/api/chat")
            self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"remaining": 2, "limit": 2, "used": 0})

    def test_post_returns_reply_and_remaining(self):
        response = self.client.post("/api/chat", json={"message": "When is roll call?"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"reply": "Roll call is at 8:30.", "remaining": 1, "limit": 2})
        self.assertEqual(self.client.get("/api/chat").json()["used"], 1)

    def test_exhausted_quota_returns_429_without_generation(self):
        self.quota.record()
        self.quota.record()
        response = self.client.post("/api/chat", json={"message": "Hello?"})
        self.assertEqual(response.status_code, 429)
        self.assertEqual(
            response.json(),
            {"error": QUOTA_EXHAUSTED_MESSAGE, "allowed": False, "remaining": 0, "limit": 2},
        )
        self.assertEqual(self.backend.calls, 0)

    def test_missing_message_returns_400(self):
        for payload in ({}, {"message": ""}, {"message": "   "}):
            response = self.client.post("/api/chat", json=payload)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "Message is required"})
        self.assertEqual(self.quota.status().used, 0)

    def test_malformed_body_returns_400(self):
        response = self.client.post(
            "/api/chat",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Message is required"})

    def test_missing_credential_returns_configuration_error(self):
        def _unconfigured():
            raise ConfigurationError("GROQ_API_KEY is not set")

        self.service.backend_provider = _unconfigured
        response = self.client.post("/api/chat", json={"message": "Hello?"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "GROQ_API_KEY is not set"})
        self.assertEqual(self.quota.status().used, 0)

    def test_backend_failure_returns_generic_envelope(self):
        self.backend.error = RuntimeError("upstream exploded")
        response = self.client.post("/api/chat", json={"message": "Hello?"})
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "Internal Server Error")
        self.assertIn("upstream exploded", body["details"])
        self.assertEqual(self.quota.status().used, 0)

    def test_metrics_count_outcomes(self):
        self.client.post("/api/chat", json={"message": "When is roll call?"})
        self.client.post("/api/chat", json={})
        summary = self.client.get("/metrics").json()
        self.assertEqual(summary["throughput"]["total_requests"], 2)
        self.assertEqual(summary["outcomes"], {"answered": 1, "invalid": 1})
        self.assertEqual(summary["selection_strategies"], {"all": 1})

    def test_malformed_body_is_counted_as_invalid(self):
        self.client.post("/api/chat", content=b"not json", headers={"Content-Type": "application/json"})
        self.client.post("/api/chat", json={"message": 42})
        summary = self.client.get("/metrics").json()
        self.assertEqual(summary["outcomes"], {"invalid": 2})
        self.assertEqual(self.quota.status().used, 0)

    def test_topics_endpoint_lists_identifiers(self):
        response = self.client.get("/api/topics")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"topics": ["Attendance"]})


if __name__ == "__main__":
    unittest.main()
