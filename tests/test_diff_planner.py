"""Tests for the diff planner."""

from __future__ import annotations

from ecograph.engines.diff_planner import WorkReason, plan


class TestPlan:
    def test_absent_is_new(self, make_candidate):
        result = plan({"A": make_candidate("A")}, {})
        assert [(i.candidate.name, i.reason) for i in result.queue] == [("A", WorkReason.NEW)]
        assert result.reuse == {}

    def test_same_version_is_reused(self, make_candidate, make_record):
        cached = make_record("A", "1.0", ["B"])
        result = plan({"A": make_candidate("A", "1.0")}, {"A": cached})
        assert result.queue == []
        assert result.reuse["A"] is cached

    def test_older_cache_is_stale_and_queues_live_candidate(self, make_candidate, make_record):
        live = make_candidate("A", "1.1", repo="cpan")
        result = plan({"A": live}, {"A": make_record("A", "1.0")})
        assert len(result.queue) == 1
        assert result.queue[0].reason is WorkReason.STALE
        assert result.queue[0].candidate is live

    def test_newer_cache_is_reused(self, make_candidate, make_record):
        cached = make_record("A", "2.0")
        result = plan({"A": make_candidate("A", "1.0")}, {"A": cached})
        assert result.reuse == {"A": cached}

    def test_numeric_comparison(self, make_candidate, make_record):
        result = plan({"A": make_candidate("A", "1.10")}, {"A": make_record("A", "1.9")})
        assert result.queue[0].reason is WorkReason.STALE

    def test_malformed_is_treated_as_absent(self, make_candidate):
        result = plan({"A": make_candidate("A")}, {"A": None})
        assert result.queue[0].reason is WorkReason.NEW
        assert result.malformed == ["A"]

    def test_unresolved_cache_is_queued_again(self, make_candidate, make_record):
        cached = make_record("A", "1.0", unresolved=True)
        result = plan({"A": make_candidate("A", "1.0")}, {"A": cached})
        assert result.queue[0].reason is WorkReason.UNRESOLVED
        assert "A" not in result.reuse

    def test_cached_but_not_live_is_dropped(self, make_candidate, make_record):
        result = plan({"A": make_candidate("A")}, {"A": make_record("A"), "Gone": make_record("Gone")})
        assert result.dropped == ["Gone"]
        assert "Gone" not in result.reuse

    def test_queue_sorted_by_name(self, make_candidate):
        winners = {n: make_candidate(n) for n in ["C", "A", "B"]}
        result = plan(winners, {})
        assert [i.candidate.name for i in result.queue] == ["A", "B", "C"]

    def test_counts(self, make_candidate, make_record):
        winners = {
            "New": make_candidate("New"),
            "Stale": make_candidate("Stale", "2"),
            "Same": make_candidate("Same"),
        }
        cached = {"Stale": make_record("Stale", "1"), "Same": make_record("Same")}
        result = plan(winners, cached)
        assert result.count(WorkReason.NEW) == 1
        assert result.count(WorkReason.STALE) == 1
        assert list(result.reuse) == ["Same"]

    def test_newer_unresolved_cache_is_never_downgraded(self, make_candidate, make_record):
        cached = make_record("A", "2.0", unresolved=True)
        result = plan({"A": make_candidate("A", "1.0")}, {"A": cached})
        assert result.queue == []
        assert result.reuse == {"A": cached}
