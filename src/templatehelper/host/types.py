"""Type definitions shared by the request context and the document engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Sequence, Union

from ..core.ranges import LocationRelation


ParagraphLocator = Union[int, str]


class InsertLocation(str, Enum):
    """Where inserted content lands relative to its target."""

    START = "Start"
    END = "End"
    REPLACE = "Replace"


@dataclass(slots=True, frozen=True)
class HostRange:
    """Opaque handle to a span of document content.

    Handles are only minted by an engine. Callers compare and mutate them
    through the request context; the numbers inside mean nothing outside the
    engine that issued them.
    """

    handle_id: int
    engine_id: str

    def __repr__(self) -> str:
        return f"HostRange(#{self.handle_id}@{self.engine_id[:8]})"


class HostEngine(Protocol):
    """Synchronous primitives executed by :class:`RequestContext` at sync time."""

    engine_id: str

    def ensure_connected(self) -> None:
        ...

    def search(self, pattern: str, *, match_case: bool, match_whole_word: bool) -> list[HostRange]:
        ...

    def paragraphs(self) -> list[HostRange]:
        ...

    def paragraph_range(self, locator: ParagraphLocator) -> HostRange:
        ...

    def compare_location(self, subject: HostRange, other: HostRange) -> LocationRelation:
        ...

    def range_text(self, handle: HostRange) -> str:
        ...

    def insert_text(self, handle: HostRange | None, text: str, location: InsertLocation) -> None:
        ...

    def insert_paragraph(self, text: str, location: InsertLocation) -> HostRange:
        ...

    def clear(self) -> None:
        ...

    def get_text(self) -> str:
        ...

    def paragraph_texts(self) -> Sequence[str]:
        ...

    def get_ooxml(self) -> str:
        ...

    def insert_ooxml(self, markup: str, location: InsertLocation) -> None:
        ...

    def checkpoint(self) -> Any:
        ...

    def restore(self, checkpoint: Any) -> None:
        ...

    @property
    def handle_watermark(self) -> int:
        ...

    def release_handles(self, since: int) -> int:
        ...


__all__ = ["HostEngine", "HostRange", "InsertLocation", "ParagraphLocator"]
