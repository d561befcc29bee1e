"""Shared engine logic: search, handle tracking and location classification.

Concrete engines only know how to read and write paragraph text. Everything a
caller can observe about ranges (which spans exist, how they move when text
around them changes, how two of them relate) lives here so that the in-memory
engine and the ``.docx`` engine behave identically.
"""

from __future__ import annotations

import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from ..core.ranges import LocationRelation, TextRange, classify_location
from .errors import HostCommunicationError, InvalidArgumentError, InvalidLocatorError, StaleRangeError
from .types import HostRange, InsertLocation, ParagraphLocator

LOGGER = logging.getLogger(__name__)

MAX_SEARCH_LENGTH = 255


@dataclass(slots=True, frozen=True)
class TrackedSpan:
    """Live position of a handle: a paragraph index plus offsets inside it."""

    paragraph: int
    text_range: TextRange


def find_literal(
    text: str,
    pattern: str,
    *,
    match_case: bool = False,
    match_whole_word: bool = True,
) -> list[TextRange]:
    """Find non-overlapping literal occurrences of ``pattern`` in ``text``.

    Args:
        text: Paragraph text to scan.
        pattern: Literal pattern to find.
        match_case: Whether to match case.
        match_whole_word: Whether hits must be bounded by non-alphanumerics.

    Returns:
        Matching spans in document order.
    """
    if not pattern:
        return []
    flags = 0 if match_case else re.IGNORECASE
    compiled = re.compile(re.escape(pattern), flags)
    matches: list[TextRange] = []
    position = 0

    while position <= len(text):
        found = compiled.search(text, position)
        if found is None:
            break
        start, end = found.span()

        if match_whole_word:
            before_ok = start == 0 or not text[start - 1].isalnum()
            after_ok = end >= len(text) or not text[end].isalnum()
            if not (before_ok and after_ok):
                position = start + 1
                continue

        matches.append(TextRange(start, end))
        position = end if end > start else start + 1

    return matches


def parse_locator(locator: ParagraphLocator) -> int | None:
    """Return the paragraph index named by ``locator`` or ``None`` if malformed."""

    if isinstance(locator, bool):
        return None
    if isinstance(locator, int):
        return locator if locator >= 0 else None
    if isinstance(locator, str):
        token = locator.strip()
        if token.isdigit():
            return int(token)
    return None


class DocumentEngine(ABC):
    """Base class for engines that store a document as a list of paragraphs."""

    def __init__(self) -> None:
        self.engine_id = uuid.uuid4().hex
        self._spans: dict[int, TrackedSpan] = {}
        self._next_handle = 1
        self._offline_reason: str | None = None

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------
    @abstractmethod
    def paragraph_texts(self) -> list[str]:
        """Return the text of every top-level paragraph in body order."""

    @abstractmethod
    def _write_span(self, paragraph: int, text_range: TextRange, text: str) -> None:
        """Overwrite ``text_range`` of ``paragraph`` with ``text``."""

    @abstractmethod
    def _insert_paragraph_at(self, index: int, text: str) -> None:
        """Insert a new paragraph so that it ends up at ``index``."""

    @abstractmethod
    def _clear_body(self) -> None:
        """Remove all body content, leaving a single empty paragraph."""

    @abstractmethod
    def get_ooxml(self) -> str:
        """Serialize the body as WordprocessingML markup."""

    @abstractmethod
    def _import_markup(self, markup: str, location: InsertLocation) -> int:
        """Insert parsed markup and return how many paragraphs were added."""

    @abstractmethod
    def _checkpoint_content(self) -> Any:
        ...

    @abstractmethod
    def _restore_content(self, state: Any) -> None:
        ...

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------
    @property
    def connected(self) -> bool:
        return self._offline_reason is None

    def disconnect(self, reason: str = "engine offline") -> None:
        """Simulate losing the connection to the document engine."""

        self._offline_reason = reason
        LOGGER.debug("Engine %s disconnected: %s", self.engine_id, reason)

    def reconnect(self) -> None:
        self._offline_reason = None

    def ensure_connected(self) -> None:
        if self._offline_reason is not None:
            raise HostCommunicationError(
                message="The document engine could not be reached",
                debug_info={"engine_id": self.engine_id, "reason": self._offline_reason},
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def search(
        self,
        pattern: str,
        *,
        match_case: bool = False,
        match_whole_word: bool = True,
    ) -> list[HostRange]:
        if not pattern:
            raise InvalidArgumentError(message="Search text must not be empty", parameter="search")
        if len(pattern) > MAX_SEARCH_LENGTH:
            raise InvalidArgumentError(
                message=f"Search text is longer than {MAX_SEARCH_LENGTH} characters",
                parameter="search",
                details={"length": len(pattern)},
            )
        results: list[HostRange] = []
        for index, text in enumerate(self.paragraph_texts()):
            for hit in find_literal(
                text,
                pattern,
                match_case=match_case,
                match_whole_word=match_whole_word,
            ):
                results.append(self._track(index, hit))
        LOGGER.debug("Search for %r found %d matches", pattern, len(results))
        return results

    def paragraphs(self) -> list[HostRange]:
        return [
            self._track(index, TextRange(0, len(text)))
            for index, text in enumerate(self.paragraph_texts())
        ]

    def paragraph_range(self, locator: ParagraphLocator) -> HostRange:
        """Resolve ``locator`` to the whole range of the paragraph it names."""

        texts = self.paragraph_texts()
        index = parse_locator(locator)
        if index is None or index >= len(texts):
            raise InvalidLocatorError(
                message=f"Paragraph locator {locator!r} is out of range",
                locator=locator,
                paragraph_count=len(texts),
            )
        return self._track(index, TextRange(0, len(texts[index])))

    def compare_location(self, subject: HostRange, other: HostRange) -> LocationRelation:
        if subject.engine_id != self.engine_id or other.engine_id != self.engine_id:
            return LocationRelation.UNRELATED
        first = self._span(subject)
        second = self._span(other)
        if first.paragraph < second.paragraph:
            return LocationRelation.BEFORE
        if first.paragraph > second.paragraph:
            return LocationRelation.AFTER
        return classify_location(first.text_range, second.text_range)

    def range_text(self, handle: HostRange) -> str:
        span = self._span(handle)
        text = self.paragraph_texts()[span.paragraph]
        return text[span.text_range.start : span.text_range.end]

    def get_text(self) -> str:
        return "\n".join(self.paragraph_texts())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert_text(self, handle: HostRange | None, text: str, location: InsertLocation) -> None:
        """Insert ``text`` relative to ``handle`` (or the body when ``None``)."""

        location = InsertLocation(location)
        if handle is None:
            self._insert_body_text(text, location)
            return
        span = self._span(handle)
        current = span.text_range
        if location is InsertLocation.REPLACE:
            edited = current
            target = TextRange(current.start, current.start + len(text))
        elif location is InsertLocation.START:
            edited = TextRange(current.start, current.start)
            target = TextRange(current.start, current.end + len(text))
        else:
            edited = TextRange(current.end, current.end)
            target = TextRange(current.start, current.end + len(text))
        self._edit(span.paragraph, edited, text)
        self._spans[handle.handle_id] = TrackedSpan(span.paragraph, target)

    def replace(self, handle: HostRange, text: str) -> None:
        self.insert_text(handle, text, InsertLocation.REPLACE)

    def insert_paragraph(self, text: str, location: InsertLocation) -> HostRange:
        location = InsertLocation(location)
        if location is InsertLocation.REPLACE:
            raise InvalidArgumentError(
                message="Paragraphs can only be inserted at the start or end of the body",
                parameter="location",
            )
        index = 0 if location is InsertLocation.START else len(self.paragraph_texts())
        self._insert_paragraph_at(index, text)
        self._shift_paragraphs(index, 1)
        return self._track(index, TextRange(0, len(text)))

    def clear(self) -> None:
        self._clear_body()
        self._invalidate_all()

    def insert_ooxml(self, markup: str, location: InsertLocation) -> None:
        location = InsertLocation(location)
        added = self._import_markup(markup, location)
        if location is InsertLocation.REPLACE:
            self._invalidate_all()
        elif location is InsertLocation.START:
            self._shift_paragraphs(0, added)
        LOGGER.debug("Imported %d paragraphs of markup (%s)", added, location.value)

    # ------------------------------------------------------------------
    # Batch support
    # ------------------------------------------------------------------
    def checkpoint(self) -> Any:
        return (self._checkpoint_content(), dict(self._spans), self._next_handle)

    def restore(self, checkpoint: Any) -> None:
        content, spans, next_handle = checkpoint
        self._restore_content(content)
        self._spans = dict(spans)
        self._next_handle = next_handle

    @property
    def handle_watermark(self) -> int:
        """Id the next minted handle will receive."""

        return self._next_handle

    def release_handles(self, since: int) -> int:
        """Forget every handle minted at or after ``since`` and return how many went."""

        released = [handle_id for handle_id in self._spans if handle_id >= since]
        for handle_id in released:
            del self._spans[handle_id]
        return len(released)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _track(self, paragraph: int, text_range: TextRange) -> HostRange:
        handle = HostRange(handle_id=self._next_handle, engine_id=self.engine_id)
        self._next_handle += 1
        self._spans[handle.handle_id] = TrackedSpan(paragraph, text_range)
        return handle

    def _span(self, handle: HostRange) -> TrackedSpan:
        if handle.engine_id != self.engine_id:
            raise StaleRangeError(
                message="The range belongs to a different document",
                handle_id=handle.handle_id,
                debug_info={"engine_id": self.engine_id, "range_engine_id": handle.engine_id},
            )
        span = self._spans.get(handle.handle_id)
        if span is None:
            raise StaleRangeError(
                message="The range no longer exists in the document",
                handle_id=handle.handle_id,
            )
        return span

    def _edit(self, paragraph: int, edited: TextRange, text: str) -> None:
        self._write_span(paragraph, edited, text)
        for handle_id, span in list(self._spans.items()):
            if span.paragraph != paragraph:
                continue
            moved = span.text_range.after_edit(edited, len(text))
            if moved != span.text_range:
                self._spans[handle_id] = TrackedSpan(paragraph, moved)

    def _insert_body_text(self, text: str, location: InsertLocation) -> None:
        if location is InsertLocation.REPLACE:
            self.clear()
            location = InsertLocation.END
        texts = self.paragraph_texts()
        if not texts:
            self._insert_paragraph_at(0, text)
            return
        if location is InsertLocation.START:
            self._edit(0, TextRange.zero(), text)
        else:
            last = len(texts) - 1
            end = len(texts[last])
            self._edit(last, TextRange(end, end), text)

    def _shift_paragraphs(self, first_index: int, count: int) -> None:
        if count <= 0:
            return
        for handle_id, span in list(self._spans.items()):
            if span.paragraph >= first_index:
                self._spans[handle_id] = TrackedSpan(span.paragraph + count, span.text_range)

    def _invalidate_all(self) -> None:
        self._spans.clear()

    @property
    def tracked_handles(self) -> Sequence[int]:
        return tuple(self._spans)


__all__ = ["DocumentEngine", "MAX_SEARCH_LENGTH", "TrackedSpan", "find_literal", "parse_locator"]
