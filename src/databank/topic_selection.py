"""
Chooses which topic documents ground an answer.

Small corpora are used whole. Larger corpora are narrowed by asking the
backend to name up to ``MAX_SELECTED_TOPICS`` topics; its reply is matched
against catalog identifiers with bidirectional substring containment
(``topic_matches``). When nothing matches, every topic is used but truncated
to a short prefix.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from langchain_core.prompts import PromptTemplate

from .config import FALLBACK_PREFIX_CHARS, MAX_SELECTED_TOPICS, SMALL_CORPUS_MAX_TOPICS, TOPIC_CAP
from .corpus import TopicMeta
from .errors import ClassificationError
from .llm_backend import TextBackend
from .observability import get_logger

logger = get_logger(__name__)

STRATEGY_EMPTY = "empty"
STRATEGY_ALL = "all"
STRATEGY_MATCHED = "matched"
STRATEGY_FALLBACK = "fallback"

_CANDIDATE_SEPARATORS_RE = re.compile(r"[、，,\n]")
_CANDIDATE_STRIP_CHARS = " \t\"'`*-•「」[]()."

CLASSIFICATION_PROMPT = PromptTemplate.from_template(
    """You route questions to reference topics.
Available topics:
{topics}

Question:
{question}

Reply with the names of up to {max_topics} topics from the list that are most relevant to the question.
Separate names with commas. Output only the names, with no explanation."""
)


@dataclass(frozen=True)
class SelectionResult:
    topics: tuple[TopicMeta, ...]
    strategy: str
    # Per-topic character budget; None means full content.
    max_chars: int | None = None

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(topic.identifier for topic in self.topics)

    @property
    def truncated(self) -> bool:
        return self.max_chars is not None


def topic_matches(candidate: str, identifier: str) -> bool:
    """Case-insensitive bidirectional substring containment."""
    cand = candidate.strip().casefold()
    ident = identifier.strip().casefold()
    if not cand or not ident:
        return False
    return cand in ident or ident in cand


def parse_topic_candidates(response: str) -> list[str]:
    """Splits a comma separated classifier reply into trimmed candidate names."""
    out: list[str] = []
    for raw in _CANDIDATE_SEPARATORS_RE.split(str(response or "")):
        candidate = raw.strip().strip(_CANDIDATE_STRIP_CHARS).strip()
        if candidate:
            out.append(candidate)
    return out


def match_topics(
    candidates: Iterable[str],
    catalog: Sequence[TopicMeta],
    limit: int = MAX_SELECTED_TOPICS,
) -> tuple[TopicMeta, ...]:
    """Returns catalog entries matched by any candidate, in catalog order."""
    candidates = [c for c in candidates if c]
    matched = [
        topic
        for topic in catalog
        if any(topic_matches(candidate, topic.identifier) for candidate in candidates)
    ]
    return tuple(matched[: max(0, int(limit))])


class TopicSelector:
    def __init__(
        self,
        *,
        small_corpus_max: int = SMALL_CORPUS_MAX_TOPICS,
        max_topics: int = MAX_SELECTED_TOPICS,
        fallback_chars: int = FALLBACK_PREFIX_CHARS,
    ):
        self.max_topics = max(1, min(int(max_topics), TOPIC_CAP))
        self.small_corpus_max = max(0, min(int(small_corpus_max), TOPIC_CAP - 1))
        self.fallback_chars = int(fallback_chars)

    def classify(self, question: str, catalog: Sequence[TopicMeta], backend: TextBackend) -> str:
        prompt = CLASSIFICATION_PROMPT.format(
            topics="\n".join(f"- {topic.identifier}" for topic in catalog),
            question=question,
            max_topics=self.max_topics,
        )
        try:
            return backend.generate(prompt)
        except Exception as exc:
            raise ClassificationError(f"topic classification failed: {exc}") from exc

    def select(self, question: str, catalog: Sequence[TopicMeta], backend: TextBackend) -> SelectionResult:
        catalog = tuple(catalog)
        if not catalog:
            return SelectionResult(topics=(), strategy=STRATEGY_EMPTY)
        if len(catalog) <= self.small_corpus_max:
            return SelectionResult(topics=catalog, strategy=STRATEGY_ALL)

        response = self.classify(question, catalog, backend)
        candidates = parse_topic_candidates(response)
        matched = match_topics(candidates, catalog, limit=self.max_topics)
        if matched:
            logger.info(
                "topics_matched",
                candidates=candidates,
                matched=[topic.identifier for topic in matched],
            )
            return SelectionResult(topics=matched, strategy=STRATEGY_MATCHED)

        logger.warning(
            "topic_classification_no_match",
            response=str(response)[:200],
            catalog_size=len(catalog),
        )
        return SelectionResult(topics=catalog, strategy=STRATEGY_FALLBACK, max_chars=self.fallback_chars)
