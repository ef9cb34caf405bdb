"""Tests for the UI state reducer and submission validation."""

from __future__ import annotations

import pytest

from math_coach.schemas import Difficulty, ProblemPayload
from math_coach.state import (
    DUPLICATE_MESSAGE,
    INVALID_NUMBER_MESSAGE,
    NO_PROBLEM_MESSAGE,
    AnswerChanged,
    AppState,
    ClearAnswer,
    GenerateFailed,
    GenerateStarted,
    GenerateSucceeded,
    SelectDifficulty,
    SelectTab,
    SubmitStarted,
    SubmitSucceeded,
    ToggleHint,
    ToggleSteps,
    parse_answer,
    reduce,
    validate_submission,
)

PROBLEM = ProblemPayload(problem_text="6 x 7?", final_answer=42, hint="Times tables", steps=["6 x 7 = 42"])


def _with_problem(**extra):
    return AppState(problem=PROBLEM, problem_difficulty=Difficulty.medium, **extra)


class TestReduce:
    def test_defaults(self):
        state = AppState()
        assert state.difficulty is Difficulty.medium
        assert state.active_tab == "solve"
        assert state.is_loading is False

    def test_select_difficulty(self):
        state = reduce(AppState(), SelectDifficulty(difficulty=Difficulty.hard))
        assert state.difficulty is Difficulty.hard

    def test_select_difficulty_ignored_while_loading(self):
        state = reduce(AppState(is_loading=True), SelectDifficulty(difficulty=Difficulty.easy))
        assert state.difficulty is Difficulty.medium

    def test_generate_started_clears_previous_problem(self):
        state = _with_problem(feedback="old", show_hint=True, last_submitted_answer="41", is_correct=False)
        state = reduce(state, GenerateStarted())
        assert state.is_loading is True
        assert state.problem is None
        assert state.feedback == ""
        assert state.show_hint is False
        assert state.last_submitted_answer is None
        assert state.is_correct is None

    def test_generate_succeeded_and_failed(self):
        loading = reduce(AppState(), GenerateStarted())
        ok = reduce(loading, GenerateSucceeded(problem=PROBLEM, difficulty=Difficulty.easy))
        assert ok.problem == PROBLEM
        assert ok.problem_difficulty is Difficulty.easy
        assert ok.is_loading is False
        failed = reduce(loading, GenerateFailed(message="Failed to generate problem. Please try again."))
        assert failed.problem is None
        assert failed.is_loading is False
        assert failed.feedback.startswith("Failed")

    def test_submit_cycle(self):
        state = reduce(_with_problem(), SubmitStarted(answer="41"))
        assert state.is_loading is True
        state = reduce(state, SubmitSucceeded(answer="41", is_correct=False, feedback="Close!"))
        assert state.is_loading is False
        assert state.last_submitted_answer == "41"
        assert state.feedback == "Close!"

    def test_toggles_and_tabs(self):
        state = reduce(reduce(_with_problem(), ToggleHint()), ToggleSteps())
        assert state.show_hint and state.show_steps
        assert reduce(state, ToggleHint()).show_hint is False
        assert reduce(state, SelectTab(tab="stats")).active_tab == "stats"

    def test_answer_changed_and_cleared(self):
        state = reduce(_with_problem(), AnswerChanged(answer="4"))
        assert state.user_answer == "4"
        assert reduce(state, ClearAnswer()).user_answer == ""

    def test_state_is_immutable(self):
        original = AppState()
        reduce(original, SelectTab(tab="history"))
        assert original.active_tab == "solve"


class TestValidateSubmission:
    def test_no_problem(self):
        assert validate_submission(AppState(), "4") == (None, NO_PROBLEM_MESSAGE)

    def test_duplicate_literal(self):
        state = _with_problem(last_submitted_answer="41")
        assert validate_submission(state, "41") == (None, DUPLICATE_MESSAGE)
        # Same number, different text is a new submission
        assert validate_submission(state, "41.0") == (41.0, None)

    @pytest.mark.parametrize("raw", ["", "abc", "nan", "inf", "4,5"])
    def test_invalid_numbers(self, raw):
        assert validate_submission(_with_problem(), raw) == (None, INVALID_NUMBER_MESSAGE)

    def test_parse_answer(self):
        assert parse_answer(" 12.5 ") == 12.5
        assert parse_answer("-3") == -3.0
        assert parse_answer("twelve") is None
