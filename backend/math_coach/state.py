"""UI state as an explicit model updated by a single reducer."""

from __future__ import annotations
import math
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .schemas import Difficulty, ProblemPayload

Tab = Literal["solve", "history", "stats"]

DUPLICATE_MESSAGE = "You have already submitted this answer. Please try a different answer or generate a new problem."
INVALID_NUMBER_MESSAGE = "Please enter a valid number."
NO_PROBLEM_MESSAGE = "Generate a problem before submitting an answer."
CHECK_FAILED_MESSAGE = "Failed to check answer. Please try again."


class AppState(BaseModel):
	model_config = ConfigDict(frozen=True)

	difficulty: Difficulty = Difficulty.medium
	problem: Optional[ProblemPayload] = None
	problem_difficulty: Optional[Difficulty] = None
	user_answer: str = ""
	feedback: str = ""
	is_loading: bool = False
	is_correct: Optional[bool] = None
	show_hint: bool = False
	show_steps: bool = False
	active_tab: Tab = "solve"
	last_submitted_answer: Optional[str] = None


class SelectDifficulty(BaseModel):
	kind: Literal["select_difficulty"] = "select_difficulty"
	difficulty: Difficulty


class SelectTab(BaseModel):
	kind: Literal["select_tab"] = "select_tab"
	tab: Tab


class GenerateStarted(BaseModel):
	kind: Literal["generate_started"] = "generate_started"


class GenerateSucceeded(BaseModel):
	kind: Literal["generate_succeeded"] = "generate_succeeded"
	problem: ProblemPayload
	difficulty: Difficulty


class GenerateFailed(BaseModel):
	kind: Literal["generate_failed"] = "generate_failed"
	message: str


class AnswerChanged(BaseModel):
	kind: Literal["answer_changed"] = "answer_changed"
	answer: str


class SubmitStarted(BaseModel):
	kind: Literal["submit_started"] = "submit_started"
	answer: str


class SubmitRejected(BaseModel):
	kind: Literal["submit_rejected"] = "submit_rejected"
	message: str


class SubmitSucceeded(BaseModel):
	kind: Literal["submit_succeeded"] = "submit_succeeded"
	answer: str
	is_correct: bool
	feedback: str


class SubmitFailed(BaseModel):
	kind: Literal["submit_failed"] = "submit_failed"
	message: str = CHECK_FAILED_MESSAGE


class ToggleHint(BaseModel):
	kind: Literal["toggle_hint"] = "toggle_hint"


class ToggleSteps(BaseModel):
	kind: Literal["toggle_steps"] = "toggle_steps"


class ClearAnswer(BaseModel):
	kind: Literal["clear_answer"] = "clear_answer"


Action = Union[
	SelectDifficulty,
	SelectTab,
	GenerateStarted,
	GenerateSucceeded,
	GenerateFailed,
	AnswerChanged,
	SubmitStarted,
	SubmitRejected,
	SubmitSucceeded,
	SubmitFailed,
	ToggleHint,
	ToggleSteps,
	ClearAnswer,
]


def reduce(state: AppState, action: Action) -> AppState:
	if isinstance(action, SelectDifficulty):
		# Selector is disabled while a request is in flight
		if state.is_loading:
			return state
		return state.model_copy(update={"difficulty": action.difficulty})
	if isinstance(action, SelectTab):
		return state.model_copy(update={"active_tab": action.tab})
	if isinstance(action, GenerateStarted):
		return state.model_copy(update={
			"is_loading": True,
			"problem": None,
			"problem_difficulty": None,
			"feedback": "",
			"user_answer": "",
			"is_correct": None,
			"show_hint": False,
			"show_steps": False,
			"last_submitted_answer": None,
		})
	if isinstance(action, GenerateSucceeded):
		return state.model_copy(update={
			"is_loading": False,
			"problem": action.problem,
			"problem_difficulty": action.difficulty,
		})
	if isinstance(action, GenerateFailed):
		return state.model_copy(update={"is_loading": False, "feedback": action.message})
	if isinstance(action, AnswerChanged):
		return state.model_copy(update={"user_answer": action.answer})
	if isinstance(action, SubmitStarted):
		return state.model_copy(update={"is_loading": True, "feedback": "", "is_correct": None, "user_answer": action.answer})
	if isinstance(action, SubmitRejected):
		return state.model_copy(update={"feedback": action.message})
	if isinstance(action, SubmitSucceeded):
		return state.model_copy(update={
			"is_loading": False,
			"is_correct": action.is_correct,
			"feedback": action.feedback,
			"last_submitted_answer": action.answer,
		})
	if isinstance(action, SubmitFailed):
		return state.model_copy(update={"is_loading": False, "feedback": action.message})
	if isinstance(action, ToggleHint):
		return state.model_copy(update={"show_hint": not state.show_hint})
	if isinstance(action, ToggleSteps):
		return state.model_copy(update={"show_steps": not state.show_steps})
	if isinstance(action, ClearAnswer):
		return state.model_copy(update={"user_answer": ""})
	raise TypeError(f"Unknown action: {action!r}")


def parse_answer(raw: str) -> Optional[float]:
	try:
		value = float(raw.strip())
	except (AttributeError, ValueError):
		return None
	if math.isnan(value) or math.isinf(value):
		return None
	return value


def validate_submission(state: AppState, raw_answer: str) -> Tuple[Optional[float], Optional[str]]:
	"""Return (parsed answer, None) or (None, user-facing rejection message)."""
	if state.problem is None:
		return None, NO_PROBLEM_MESSAGE
	if raw_answer == state.last_submitted_answer:
		return None, DUPLICATE_MESSAGE
	value = parse_answer(raw_answer)
	if value is None:
		return None, INVALID_NUMBER_MESSAGE
	return value, None
