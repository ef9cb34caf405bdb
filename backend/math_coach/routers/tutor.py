from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..schemas import Difficulty, ProblemPayload
from ..state import AppState, Tab
from ..tutor import SubmissionRejected, TutorBusy, TutorService
from .deps import get_learner_id, get_tutor

router = APIRouter(prefix="/tutor", tags=["tutor"])


class DifficultyRequest(BaseModel):
	difficulty: Difficulty


class TabRequest(BaseModel):
	tab: Tab


class GenerateRequest(BaseModel):
	difficulty: Optional[Difficulty] = None


class AnswerRequest(BaseModel):
	# Raw text as typed; duplicates are compared literally
	answer: str


class ProblemView(BaseModel):
	problem_text: str
	has_hint: bool
	has_steps: bool
	hint: Optional[str] = None
	steps: Optional[List[str]] = None


class StateResponse(BaseModel):
	success: bool = True
	difficulty: Difficulty
	active_tab: Tab
	problem: Optional[ProblemView] = None
	problem_difficulty: Optional[Difficulty] = None
	user_answer: str
	feedback: str
	is_loading: bool
	is_correct: Optional[bool] = None
	show_hint: bool
	show_steps: bool
	history_count: int


def _problem_view(problem: ProblemPayload, state: AppState) -> ProblemView:
	# The final answer never leaves the server; hint and steps only once disclosed
	return ProblemView(
		problem_text=problem.problem_text,
		has_hint=bool(problem.hint),
		has_steps=bool(problem.steps),
		hint=problem.hint if state.show_hint else None,
		steps=problem.steps if state.show_steps else None,
	)


def _state_response(tutor: TutorService, learner: str, state: AppState, *, success: bool = True) -> StateResponse:
	return StateResponse(
		success=success,
		difficulty=state.difficulty,
		active_tab=state.active_tab,
		problem=_problem_view(state.problem, state) if state.problem else None,
		problem_difficulty=state.problem_difficulty,
		user_answer=state.user_answer,
		feedback=state.feedback,
		is_loading=state.is_loading,
		is_correct=state.is_correct,
		show_hint=state.show_hint,
		show_steps=state.show_steps,
		history_count=len(tutor.history(learner)),
	)


@router.get("/state", response_model=StateResponse)
async def get_state(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.state(learner))


@router.post("/difficulty", response_model=StateResponse)
async def select_difficulty(req: DifficultyRequest, learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.select_difficulty(learner, req.difficulty))


@router.post("/tab", response_model=StateResponse)
async def select_tab(req: TabRequest, learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.select_tab(learner, req.tab))


@router.post("/problem", response_model=StateResponse)
async def generate_problem(req: GenerateRequest, learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	try:
		state = await tutor.generate(learner, req.difficulty)
	except TutorBusy as e:
		raise HTTPException(status_code=409, detail=str(e))
	return _state_response(tutor, learner, state, success=state.problem is not None)


@router.post("/answer", response_model=StateResponse)
async def submit_answer(req: AnswerRequest, learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	try:
		state = await tutor.submit(learner, req.answer)
	except TutorBusy as e:
		raise HTTPException(status_code=409, detail=str(e))
	except SubmissionRejected as e:
		raise HTTPException(status_code=409 if e.duplicate else 400, detail=e.message)
	return _state_response(tutor, learner, state, success=state.is_correct is not None)


@router.post("/answer/clear", response_model=StateResponse)
async def clear_answer(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.clear_answer(learner))


@router.post("/hint", response_model=StateResponse)
async def toggle_hint(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.toggle_hint(learner))


@router.post("/steps", response_model=StateResponse)
async def toggle_steps(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return _state_response(tutor, learner, tutor.toggle_steps(learner))
