"""Builds the grounding context string from selected topics."""
from __future__ import annotations

import re

from .corpus import TopicCatalog
from .observability import get_logger
from .topic_selection import SelectionResult

logger = get_logger(__name__)

EMPTY_CORPUS_PLACEHOLDER = "(No reference material is registered. Answering from general knowledge.)"
HEADER_PREFIX = "### "
SECTION_SEPARATOR = "\n\n==========\n\n"
ELLIPSIS = "..."

_HEADER_RE = re.compile(r"^### (?P<identifier>[^\n]*)\n?(?P<content>.*)\Z", flags=re.DOTALL)


def truncate_content(content: str, max_chars: int | None) -> str:
    """
    Applies the fallback budget. With a budget every section is cut to
    ``max_chars`` and marked with ``...``, even when it was already short
    enough, so a reader can tell excerpts from full documents.
    """
    if max_chars is None:
        return content
    return content[:max_chars] + ELLIPSIS


def render_section(identifier: str, content: str) -> str:
    return f"{HEADER_PREFIX}{identifier}\n{content}"


class ContextAssembler:
    def __init__(self, catalog: TopicCatalog):
        self.catalog = catalog

    def build(self, selection: SelectionResult) -> str:
        if not selection.topics:
            return EMPTY_CORPUS_PLACEHOLDER
        sections = []
        for meta in selection.topics:
            topic = self.catalog.load(meta)
            logger.debug("topic_loaded", identifier=topic.identifier, byte_size=topic.byte_size)
            sections.append(render_section(topic.identifier, truncate_content(topic.content, selection.max_chars)))
        return SECTION_SEPARATOR.join(sections)


def parse_context(text: str) -> dict[str, str]:
    """Splits an assembled context back into ``identifier -> content``."""
    if not text or text == EMPTY_CORPUS_PLACEHOLDER:
        return {}
    sections: dict[str, str] = {}
    for chunk in text.split(SECTION_SEPARATOR):
        match = _HEADER_RE.match(chunk)
        if match is None:
            raise ValueError(f"context section has no header: {chunk[:40]!r}")
        sections[match.group("identifier")] = match.group("content")
    return sections
