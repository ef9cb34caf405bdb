"""Tests for the session aggregator and its write-through persistence."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from math_coach.aggregator import SessionAggregator
from math_coach.schemas import Difficulty, DifficultyScore, ScoreStats
from math_coach.session import PersistentSession


def _zero():
    return {"total": 0, "correct": 0}


class TestSessionAggregator:
    def test_two_submissions_scenario(self):
        agg = SessionAggregator()
        first = agg.record_submission("2+2=?", 4, 4, "easy", True)
        second = agg.record_submission("3+3=?", 5, 6, "easy", False)

        history = agg.history
        assert len(history) == 2
        assert history[0] is second
        assert history[1] is first
        assert agg.scores.model_dump(mode="json") == {
            "total": 2,
            "correct": 1,
            "by_difficulty": {
                "easy": {"total": 2, "correct": 1},
                "medium": _zero(),
                "hard": _zero(),
            },
        }

    def test_totals_match_per_tier_sums(self):
        agg = SessionAggregator()
        plan = [("easy", True), ("hard", False), ("medium", True), ("hard", True), ("easy", False)]
        for n, (tier, ok) in enumerate(plan, start=1):
            agg.record_submission(f"p{n}", 1, 1 if ok else 2, tier, ok)
            scores = agg.scores
            assert scores.total == n
            assert scores.total == sum(s.total for s in scores.by_difficulty.values())
            assert scores.correct == sum(s.correct for s in scores.by_difficulty.values())
        assert agg.scores.by_difficulty[Difficulty.hard] == DifficultyScore(total=2, correct=1)

    def test_entry_fields(self):
        agg = SessionAggregator()
        entry = agg.record_submission("How many?", 12.5, 12.5, Difficulty.medium, True)
        assert entry.problem == "How many?"
        assert entry.user_answer == 12.5
        assert entry.difficulty is Difficulty.medium
        assert entry.timestamp.tzinfo is not None
        assert entry.id.split("-")[0].isdigit()

    def test_entries_are_immutable(self):
        entry = SessionAggregator().record_submission("x", 1, 1, "easy", True)
        with pytest.raises(ValidationError):
            entry.is_correct = False

    def test_ids_unique(self):
        agg = SessionAggregator()
        ids = {agg.record_submission("x", 1, 1, "easy", True).id for _ in range(50)}
        assert len(ids) == 50

    def test_invalid_difficulty_changes_nothing(self):
        agg = SessionAggregator()
        with pytest.raises(ValueError):
            agg.record_submission("x", 1, 1, "impossible", True)
        assert agg.history == []
        assert agg.scores.total == 0

    def test_returned_state_is_a_copy(self):
        agg = SessionAggregator()
        agg.record_submission("x", 1, 1, "easy", True)
        agg.history.clear()
        agg.scores.by_difficulty[Difficulty.easy].total = 99
        assert len(agg.history) == 1
        assert agg.scores.by_difficulty[Difficulty.easy].total == 1

    def test_reset(self):
        agg = SessionAggregator()
        agg.record_submission("x", 1, 1, "hard", True)
        agg.reset()
        assert agg.history == []
        assert agg.scores == ScoreStats()
        assert all(s.total == 0 and s.correct == 0 for s in agg.scores.by_difficulty.values())

    def test_load_replaces_state(self):
        source = SessionAggregator()
        source.record_submission("x", 1, 2, "medium", False)
        snap = source.snapshot().model_dump(mode="json")

        agg = SessionAggregator()
        agg.load(snap["history"], snap["scores"])
        assert agg.snapshot() == source.snapshot()

    def test_load_absent_keeps_defaults(self):
        agg = SessionAggregator()
        agg.load(None, None)
        assert agg.history == []
        assert agg.scores.total == 0

    def test_load_inconsistent_scores_ignored(self):
        agg = SessionAggregator()
        agg.load(None, {"total": 3, "correct": 1, "by_difficulty": {"easy": {"total": 1, "correct": 1}}})
        assert agg.scores.total == 0

    def test_load_fills_missing_tiers(self):
        agg = SessionAggregator()
        agg.load(None, {"total": 1, "correct": 1, "by_difficulty": {"easy": {"total": 1, "correct": 1}}})
        assert agg.scores.by_difficulty[Difficulty.hard] == DifficultyScore()

    def test_accuracy(self):
        agg = SessionAggregator()
        assert agg.accuracy() == 0
        agg.record_submission("a", 1, 1, "easy", True)
        agg.record_submission("b", 1, 2, "easy", False)
        agg.record_submission("c", 1, 2, "hard", False)
        assert agg.accuracy() == 33
        assert agg.accuracy("easy") == 50
        assert agg.accuracy(Difficulty.medium) == 0


class TestPersistentSession:
    def test_write_through(self, store):
        session = PersistentSession(store)
        session.record_submission("2+2=?", 4, 4, "easy", True)
        assert len(store.get("math_history")) == 1
        assert store.get("math_scores")["total"] == 1

    def test_reload_from_store(self, store):
        PersistentSession(store).record_submission("2+2=?", 4, 4, "easy", True)
        reloaded = PersistentSession(store)
        assert reloaded.snapshot().scores.total == 1
        assert reloaded.snapshot().history[0].problem == "2+2=?"

    def test_reset_persists_empty_state(self, store):
        session = PersistentSession(store)
        session.record_submission("x", 1, 2, "medium", False)
        session.reset()
        assert store.get("math_history") == []
        scores = ScoreStats.model_validate(store.get("math_scores"))
        assert scores == ScoreStats()

    def test_expired_snapshot_loads_defaults(self, store, clock):
        PersistentSession(store).record_submission("x", 1, 1, "easy", True)
        clock.advance(12 * 60 * 60 * 1000 + 1)
        assert PersistentSession(store).snapshot().scores.total == 0

    def test_namespaces_are_separate(self, store):
        PersistentSession(store, namespace="ana").record_submission("x", 1, 1, "easy", True)
        assert PersistentSession(store, namespace="ben").snapshot().scores.total == 0
        assert store.get("ana:math_scores")["total"] == 1

    def test_expired_after_last_write(self, store, clock):
        session = PersistentSession(store)
        assert session.expired() is False
        session.record_submission("x", 1, 1, "easy", True)
        clock.advance(12 * 60 * 60 * 1000)
        assert session.expired() is False
        clock.advance(1)
        assert session.expired() is True
        session.reload()
        assert session.snapshot().scores.total == 0
        assert session.snapshot().history == []
        assert session.expired() is False

    def test_age_counts_from_the_stored_write(self, store, clock):
        PersistentSession(store).record_submission("x", 1, 1, "easy", True)
        clock.advance(11 * 60 * 60 * 1000)
        session = PersistentSession(store)
        assert session.snapshot().scores.total == 1
        clock.advance(2 * 60 * 60 * 1000)
        assert session.expired() is True
