"""
Topic document catalog.
Default implementation enumerates a flat local directory; the protocol allows
other stores later.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from .config import CORPUS_DIR, CORPUS_EXTENSIONS
from .errors import CorpusReadError
from .observability import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TopicMeta:
    identifier: str
    source_ref: str


@dataclass(frozen=True)
class Topic:
    identifier: str
    content: str
    byte_size: int

    @classmethod
    def from_text(cls, identifier: str, content: str) -> "Topic":
        return cls(identifier=identifier, content=content, byte_size=len(content.encode("utf-8")))


class TopicCatalog(Protocol):
    def list_topics(self) -> tuple[TopicMeta, ...]:
        ...

    def read(self, source_ref: str) -> str:
        ...

    def load(self, meta: TopicMeta) -> Topic:
        ...


class DirectoryCatalog:
    """Lists ``*.md``/``*.txt`` style files in one directory as topics."""

    def __init__(self, root: Path | str = CORPUS_DIR, extensions: Iterable[str] = CORPUS_EXTENSIONS):
        self._root = Path(root)
        self._extensions = tuple(str(ext).lower() for ext in extensions)

    def _scan(self) -> list[Path]:
        # is_file() stats each entry, which fails on a directory without search permission.
        try:
            entries = sorted(self._root.iterdir(), key=lambda p: p.name)
            return [
                entry
                for entry in entries
                if not entry.name.startswith(".")
                and entry.suffix.lower() in self._extensions
                and entry.is_file()
            ]
        except OSError as exc:
            raise CorpusReadError(f"cannot list corpus directory {self._root}: {exc}") from exc

    def list_topics(self) -> tuple[TopicMeta, ...]:
        try:
            paths = self._scan()
        except CorpusReadError as exc:
            logger.warning("corpus_list_failed", root=str(self._root), error=str(exc))
            return ()

        topics: list[TopicMeta] = []
        seen: set[str] = set()
        for path in paths:
            identifier = path.stem
            if identifier in seen:
                logger.warning("corpus_duplicate_identifier", identifier=identifier, source=str(path))
                continue
            seen.add(identifier)
            topics.append(TopicMeta(identifier=identifier, source_ref=str(path)))
        return tuple(topics)

    def _read_text(self, source_ref: str) -> str:
        try:
            return Path(source_ref).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise CorpusReadError(f"cannot read {source_ref}: {exc}") from exc

    def read(self, source_ref: str) -> str:
        """Returns document text, or an empty string when it cannot be read."""
        try:
            return self._read_text(source_ref)
        except CorpusReadError as exc:
            logger.warning("corpus_read_failed", source=str(source_ref), error=str(exc))
            return ""

    def load(self, meta: TopicMeta) -> Topic:
        return Topic.from_text(meta.identifier, self.read(meta.source_ref))
