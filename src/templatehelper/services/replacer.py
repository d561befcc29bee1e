"""Search-and-replace that leaves excluded paragraphs untouched.

The replacer runs in three batches against one request context:

1. search for the pattern and resolve every excluded paragraph to its range;
2. classify every match against every exclusion zone;
3. replace the matches that no zone protects.

Dispositions are decided only after the second batch has synchronized, so
the classification always reflects the document as it was before any
replacement landed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from ..core.ranges import LocationRelation
from ..host.context import ClientResult, RequestContext
from ..host.types import HostRange, ParagraphLocator

LOGGER = logging.getLogger(__name__)

PROTECTED_RELATIONS = frozenset({LocationRelation.INSIDE, LocationRelation.EQUAL})


class Disposition(str, Enum):
    """What happens to a single match."""

    EXCLUDED = "excluded"
    REPLACEABLE = "replaceable"


@dataclass(slots=True)
class ReplacementCandidate:
    """A match paired with one exclusion zone and their pending relation."""

    match: HostRange
    exclusion: HostRange
    relation: ClientResult[LocationRelation]

    @property
    def protects_match(self) -> bool:
        return self.relation.value in PROTECTED_RELATIONS


@dataclass(slots=True)
class ReplaceSummary:
    """Counts describing a finished replace pass."""

    matches_found: int = 0
    replaced: int = 0
    excluded: int = 0
    exclusion_zones: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "matches_found": self.matches_found,
            "replaced": self.replaced,
            "excluded": self.excluded,
            "exclusion_zones": self.exclusion_zones,
        }


def normalize_locators(
    excluded_paragraphs: ParagraphLocator | Iterable[ParagraphLocator] | None,
) -> list[ParagraphLocator]:
    """Accept a single locator or any iterable of them."""

    if excluded_paragraphs is None:
        return []
    if isinstance(excluded_paragraphs, (int, str)):
        return [excluded_paragraphs]
    return list(excluded_paragraphs)


def resolve_dispositions(
    matches: Sequence[HostRange],
    candidates: Iterable[ReplacementCandidate],
) -> list[tuple[HostRange, Disposition]]:
    """Reduce candidates to one disposition per match, in match order.

    A match is excluded when any of its candidates reports ``Inside`` or
    ``Equal``; a match with no candidates at all is replaceable.
    """
    protected = {candidate.match for candidate in candidates if candidate.protects_match}
    return [
        (match, Disposition.EXCLUDED if match in protected else Disposition.REPLACEABLE)
        for match in matches
    ]


class ExclusionAwareReplacer:
    """Replace every occurrence of a pattern outside the excluded paragraphs."""

    def __init__(self, *, match_case: bool = False, match_whole_word: bool = True) -> None:
        self.match_case = match_case
        self.match_whole_word = match_whole_word

    async def run(
        self,
        context: RequestContext,
        search_text: str,
        replacement: str,
        excluded_paragraphs: ParagraphLocator | Iterable[ParagraphLocator] | None = (),
    ) -> ReplaceSummary:
        locators = normalize_locators(excluded_paragraphs)

        found = context.search(
            search_text,
            match_case=self.match_case,
            match_whole_word=self.match_whole_word,
        )
        zone_results = [context.paragraph_range(locator) for locator in locators]
        await context.sync()

        matches = found.value
        zones = [result.value for result in zone_results]
        candidates = [
            ReplacementCandidate(match=match, exclusion=zone, relation=context.compare_location(match, zone))
            for match in matches
            for zone in zones
        ]
        await context.sync()

        dispositions = resolve_dispositions(matches, candidates)
        summary = ReplaceSummary(matches_found=len(matches), exclusion_zones=len(zones))
        for match, disposition in dispositions:
            if disposition is Disposition.EXCLUDED:
                summary.excluded += 1
                continue
            context.replace(match, replacement)
            summary.replaced += 1
        await context.sync()

        LOGGER.debug(
            "Replaced %d of %d matches for %r (%d excluded by %d zones)",
            summary.replaced,
            summary.matches_found,
            search_text,
            summary.excluded,
            summary.exclusion_zones,
        )
        return summary


__all__ = [
    "Disposition",
    "ExclusionAwareReplacer",
    "PROTECTED_RELATIONS",
    "ReplaceSummary",
    "ReplacementCandidate",
    "normalize_locators",
    "resolve_dispositions",
]
