"""Question answering orchestration: quota gate, selection, context, answer, charge."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .context_assembly import ContextAssembler
from .corpus import DirectoryCatalog, TopicCatalog
from .errors import QuotaExceededError, ValidationError
from .generation import AnswerGenerator
from .llm_backend import TextBackend, build_backend
from .observability import get_logger
from .quota import QuotaGovernor, QuotaStatus
from .topic_selection import TopicSelector

logger = get_logger(__name__)

QUOTA_EXHAUSTED_MESSAGE = "The daily usage limit has been reached. Please try again tomorrow."


@dataclass(frozen=True)
class AnswerResult:
    reply: str
    remaining: int
    limit: int
    topics: tuple[str, ...] = ()
    strategy: str = ""


class QuestionAnsweringService:
    """
    Runs one grounded question through the pipeline.

    The backend is resolved per request through ``backend_provider`` so a
    missing credential is reported as a configuration error on that request.
    Quota is charged only after a reply has been produced.
    """

    def __init__(
        self,
        *,
        quota: QuotaGovernor | None = None,
        catalog: TopicCatalog | None = None,
        selector: TopicSelector | None = None,
        generator: AnswerGenerator | None = None,
        backend_provider: Callable[[], TextBackend] = build_backend,
    ):
        self.quota = quota or QuotaGovernor()
        self.catalog = catalog or DirectoryCatalog()
        self.selector = selector or TopicSelector()
        self.assembler = ContextAssembler(self.catalog)
        self.generator = generator or AnswerGenerator()
        self.backend_provider = backend_provider

    def status(self) -> QuotaStatus:
        return self.quota.status()

    def topics(self) -> list[str]:
        return [topic.identifier for topic in self.catalog.list_topics()]

    def ask(self, message: Any) -> AnswerResult:
        check = self.quota.check()
        if not check.allowed:
            logger.warning("answer_rejected_quota", limit=check.limit)
            raise QuotaExceededError(limit=check.limit, remaining=0)

        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")
        question = message.strip()

        backend = self.backend_provider()

        catalog = self.catalog.list_topics()
        selection = self.selector.select(question, catalog, backend)
        context = self.assembler.build(selection)
        logger.info(
            "context_assembled",
            strategy=selection.strategy,
            topics=list(selection.identifiers),
            catalog_size=len(catalog),
            context_chars=len(context),
        )

        reply = self.generator.answer(question, context, backend)

        status = self.quota.record()
        logger.info("answer_completed", used=status.used, remaining=status.remaining, reply_chars=len(reply))
        return AnswerResult(
            reply=reply,
            remaining=status.remaining,
            limit=status.limit,
            topics=selection.identifiers,
            strategy=selection.strategy,
        )
