"""Ordering of display items against the query."""

from collections.abc import Sequence
from typing import Protocol

from rapidfuzz import fuzz, process

from heats.source.models import DisplayItem

MAX_RESULTS = 50


class Ranker(Protocol):
    def rank(
        self, items: Sequence[DisplayItem], query: str, limit: int = MAX_RESULTS
    ) -> list[DisplayItem]:
        """
        Return the items matching ``query``, best first.

        The returned objects must be elements of ``items``. An empty query
        returns every item in its original order.
        """
        ...


class RapidfuzzRanker:
    score_cutoff: float

    def __init__(self, score_cutoff: float = 50.0):
        self.score_cutoff = score_cutoff

    def rank(
        self, items: Sequence[DisplayItem], query: str, limit: int = MAX_RESULTS
    ) -> list[DisplayItem]:
        query = query.strip()
        if not query:
            return list(items)
        matches = process.extract(
            query,
            [item.title for item in items],
            scorer=fuzz.WRatio,
            processor=str.lower,
            limit=None,
            score_cutoff=self.score_cutoff,
        )
        # extract() returns (choice, score, index); keep load order among equal scores
        matches.sort(key=lambda match: (-match[1], match[2]))
        return [items[index] for _, _, index in matches[:limit]]
