"""Offset spans and the location relations the host reports between them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class LocationRelation(str, Enum):
    """Relationship of one range to another, as reported by ``compare_location``."""

    BEFORE = "Before"
    AFTER = "After"
    INSIDE = "Inside"
    CONTAINS = "Contains"
    EQUAL = "Equal"
    OVERLAP = "Overlap"
    UNRELATED = "Unrelated"


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span of character offsets inside one paragraph."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"TextRange {label} must be an integer")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    @property
    def length(self) -> int:
        """Return the width of the range."""

        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        """Return the range as a ``(start, end)`` tuple."""

        return (self.start, self.end)

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    def shift(self, delta: int) -> TextRange:
        """Return the range moved by ``delta`` characters."""

        return TextRange(self.start + delta, self.end + delta)

    def after_edit(self, edited: TextRange, inserted_length: int) -> TextRange:
        """Return where this range lands after ``edited`` is replaced.

        ``inserted_length`` is the length of the text written over ``edited``.
        Ranges wholly after the edit move with it, ranges wholly before it stay
        put, and ranges that straddle it stretch or shrink to keep covering it.
        """

        delta = inserted_length - edited.length
        if self.start >= edited.end:
            return self.shift(delta)
        if self.end <= edited.start:
            return self
        start = min(self.start, edited.start)
        if self.end >= edited.end:
            end = self.end + delta
        else:
            end = edited.start + inserted_length
        return TextRange(start, end)

    @classmethod
    def zero(cls) -> TextRange:
        """Return a caret-aligned range at offset 0."""

        return cls(0, 0)


def classify_location(subject: TextRange, other: TextRange) -> LocationRelation:
    """Classify ``subject`` against ``other`` when both live in the same paragraph."""

    if subject.start == other.start and subject.end == other.end:
        return LocationRelation.EQUAL
    if other.start <= subject.start and subject.end <= other.end:
        return LocationRelation.INSIDE
    if subject.start <= other.start and other.end <= subject.end:
        return LocationRelation.CONTAINS
    if subject.end <= other.start:
        return LocationRelation.BEFORE
    if subject.start >= other.end:
        return LocationRelation.AFTER
    return LocationRelation.OVERLAP


__all__ = ["LocationRelation", "TextRange", "classify_location"]
