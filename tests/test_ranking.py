"""Tests for the rapidfuzz-backed ranker."""

from heats.session.ranking import RapidfuzzRanker
from heats.source.models import DisplayItem


def items(*titles: str, source: str = "apps") -> list[DisplayItem]:
    return [DisplayItem(title=t, subtitle=None, exec_path=t, source_name=source) for t in titles]


class TestRapidfuzzRanker:
    def test_empty_query_returns_all_in_order(self) -> None:
        candidates = items(*(f"item {i}" for i in range(80)))
        assert RapidfuzzRanker().rank(candidates, "") == candidates
        assert RapidfuzzRanker().rank(candidates, "   ") == candidates

    def test_best_match_first(self) -> None:
        candidates = items("Terminal", "Files", "Firefox")
        ranked = RapidfuzzRanker().rank(candidates, "firefox")
        assert ranked[0].title == "Firefox"

    def test_returns_the_same_objects(self) -> None:
        candidates = items("Terminal", "Firefox")
        ranked = RapidfuzzRanker().rank(candidates, "firefox")
        assert any(r is candidates[1] for r in ranked)

    def test_respects_limit(self) -> None:
        candidates = items(*(f"report {i}" for i in range(20)))
        assert len(RapidfuzzRanker().rank(candidates, "report", limit=5)) == 5

    def test_ties_keep_load_order(self) -> None:
        candidates = items("Alpha", source="a") + items("Alpha", source="b")
        ranked = RapidfuzzRanker().rank(candidates, "alpha")
        assert [r.source_name for r in ranked] == ["a", "b"]

    def test_no_match_below_cutoff(self) -> None:
        assert RapidfuzzRanker(score_cutoff=90).rank(items("Terminal"), "zzz") == []
