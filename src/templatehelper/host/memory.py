"""In-memory document engine holding the body as a list of paragraph strings."""

from __future__ import annotations

from typing import Iterable

from ..core.ranges import TextRange
from . import markup as wml
from .engine import DocumentEngine
from .types import InsertLocation


class InMemoryEngine(DocumentEngine):
    """Paragraph-list engine used for plain-text workflows and as the test host.

    The body always holds at least one paragraph, as a word processor's does.
    """

    def __init__(self, paragraphs: Iterable[str] | None = None) -> None:
        super().__init__()
        self._paragraphs: list[str] = list(paragraphs or ()) or [""]

    @classmethod
    def from_text(cls, text: str) -> InMemoryEngine:
        """Build an engine with one paragraph per line of ``text``."""

        return cls(text.split("\n"))

    def paragraph_texts(self) -> list[str]:
        return list(self._paragraphs)

    def _write_span(self, paragraph: int, text_range: TextRange, text: str) -> None:
        current = self._paragraphs[paragraph]
        self._paragraphs[paragraph] = current[: text_range.start] + text + current[text_range.end :]

    def _insert_paragraph_at(self, index: int, text: str) -> None:
        self._paragraphs.insert(index, text)

    def _clear_body(self) -> None:
        self._paragraphs = [""]

    def get_ooxml(self) -> str:
        return wml.markup_from_paragraphs(self._paragraphs)

    def _import_markup(self, markup: str, location: InsertLocation) -> int:
        incoming = wml.paragraphs_from_markup(markup)
        if location is InsertLocation.REPLACE:
            self._paragraphs = incoming or [""]
        elif location is InsertLocation.START:
            self._paragraphs[:0] = incoming
        else:
            self._paragraphs.extend(incoming)
        return len(incoming)

    def _checkpoint_content(self) -> list[str]:
        return list(self._paragraphs)

    def _restore_content(self, state: list[str]) -> None:
        self._paragraphs = list(state)


__all__ = ["InMemoryEngine"]
