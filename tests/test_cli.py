import io
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone

from databank import app
from databank.corpus import Topic, TopicMeta
from databank.quota import QuotaGovernor
from databank.service import QUOTA_EXHAUSTED_MESSAGE, QuestionAnsweringService


class _FakeCatalog:
    def __init__(self, docs: dict[str, str]):
        self.docs = docs

    def list_topics(self):
        return tuple(TopicMeta(identifier=k, source_ref=k) for k in self.docs)

    def read(self, source_ref: str) -> str:
        return self.docs.get(source_ref, "")

    def load(self, meta: TopicMeta) -> Topic:
        return Topic.from_text(meta.identifier, self.read(meta.source_ref))


class _EchoBackend:
    def generate(self, prompt: str) -> str:
        return "Roll call starts at 8:30."


class _BrokenBackend:
    def generate(self, prompt: str) -> str:
        raise RuntimeError("backend offline")


class TestTerminalClient(unittest.TestCase):
    def _service(self, backend, limit: int = 5, docs=None):
        return QuestionAnsweringService(
            quota=QuotaGovernor(limit=limit, clock=lambda: datetime(2026, 5, 1, tzinfo=timezone.utc)),
            catalog=_FakeCatalog(docs if docs is not None else {"Attendance": "Roll call at 8:30."}),
            backend_provider=lambda: backend,
        )

    def test_answer_is_rendered_with_topics_and_quota(self):
        service = self._service(_EchoBackend())
        out = io.StringIO()
        with redirect_stdout(out):
            keep_going = app.handle_question(service, "When is roll call?")
        self.assertTrue(keep_going)
        text = out.getvalue()
        self.assertIn("Roll call starts at 8:30.", text)
        self.assertIn("Attendance", text)
        self.assertIn("4/5", text)

    def test_exhausted_quota_ends_session(self):
        service = self._service(_EchoBackend(), limit=1)
        service.quota.record()
        out = io.StringIO()
        with redirect_stdout(out):
            keep_going = app.handle_question(service, "Anyone there?")
        self.assertFalse(keep_going)
        self.assertIn(QUOTA_EXHAUSTED_MESSAGE, out.getvalue())

    def test_backend_failure_is_reported_and_session_continues(self):
        service = self._service(_BrokenBackend())
        out = io.StringIO()
        with redirect_stdout(out):
            keep_going = app.handle_question(service, "When is roll call?")
        self.assertTrue(keep_going)
        self.assertIn("backend offline", out.getvalue())
        self.assertEqual(service.status().used, 0)

    def test_list_topics_handles_empty_catalog(self):
        out = io.StringIO()
        with redirect_stdout(out):
            app.list_topics(self._service(_EchoBackend(), docs={}))
        self.assertIn("No topic documents are registered.", out.getvalue())


if __name__ == "__main__":
    unittest.main()
