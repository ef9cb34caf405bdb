from __future__ import annotations
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..schemas import DIFFICULTIES, Difficulty, HistoryEntry, ScoreStats
from ..tutor import TutorService
from .deps import get_learner_id, get_tutor

router = APIRouter(tags=["history"])


class HistoryResponse(BaseModel):
	history: List[HistoryEntry]


class StatsResponse(BaseModel):
	scores: ScoreStats
	accuracy: int
	accuracy_by_difficulty: Dict[Difficulty, int]


@router.get("/history", response_model=HistoryResponse)
async def get_history(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return HistoryResponse(history=tutor.history(learner))


@router.delete("/history", response_model=HistoryResponse)
async def clear_history(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	# Clears the stats as well
	tutor.clear_history(learner)
	return HistoryResponse(history=tutor.history(learner))


@router.get("/stats", response_model=StatsResponse)
async def get_stats(learner: str = Depends(get_learner_id), tutor: TutorService = Depends(get_tutor)):
	return StatsResponse(
		scores=tutor.stats(learner),
		accuracy=tutor.accuracy(learner),
		accuracy_by_difficulty={d: tutor.accuracy(learner, d) for d in DIFFICULTIES},
	)
