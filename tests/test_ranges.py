"""Tests for text ranges and location classification."""

from __future__ import annotations

import pytest

from templatehelper.core.ranges import LocationRelation, TextRange, classify_location


def test_text_range_normalizes_reversed_and_negative_offsets() -> None:
    assert TextRange(5, 2).to_tuple() == (2, 5)
    assert TextRange(-3, 4).to_tuple() == (0, 4)
    assert TextRange(3, 3).is_caret
    assert TextRange(2, 7).length == 5


def test_text_range_rejects_booleans_and_garbage() -> None:
    with pytest.raises(ValueError):
        TextRange(True, 3)
    with pytest.raises(ValueError):
        TextRange("a", 3)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("subject", "other", "expected"),
    [
        ((2, 5), (2, 5), LocationRelation.EQUAL),
        ((3, 4), (0, 10), LocationRelation.INSIDE),
        ((0, 4), (0, 10), LocationRelation.INSIDE),
        ((0, 10), (3, 4), LocationRelation.CONTAINS),
        ((0, 2), (2, 5), LocationRelation.BEFORE),
        ((6, 8), (2, 5), LocationRelation.AFTER),
        ((1, 4), (3, 6), LocationRelation.OVERLAP),
    ],
)
def test_classify_location(subject: tuple[int, int], other: tuple[int, int], expected: LocationRelation) -> None:
    assert classify_location(TextRange(*subject), TextRange(*other)) is expected


def test_after_edit_shifts_ranges_behind_the_edit() -> None:
    assert TextRange(10, 13).after_edit(TextRange(0, 3), 5).to_tuple() == (12, 15)


def test_after_edit_leaves_ranges_ahead_of_the_edit() -> None:
    assert TextRange(0, 3).after_edit(TextRange(5, 8), 1).to_tuple() == (0, 3)


def test_after_edit_stretches_a_range_that_encloses_the_edit() -> None:
    assert TextRange(0, 20).after_edit(TextRange(4, 7), 5).to_tuple() == (0, 22)


def test_after_edit_clamps_a_range_that_overlaps_the_edit() -> None:
    assert TextRange(5, 10).after_edit(TextRange(0, 7), 2).to_tuple() == (0, 5)


def test_caret_at_the_edit_point_moves_past_inserted_text() -> None:
    assert TextRange(3, 3).after_edit(TextRange(3, 3), 4).to_tuple() == (7, 7)
