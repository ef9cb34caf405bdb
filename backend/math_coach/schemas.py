from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Difficulty(str, Enum):
	easy = "easy"
	medium = "medium"
	hard = "hard"


DIFFICULTIES: List[Difficulty] = [Difficulty.easy, Difficulty.medium, Difficulty.hard]

T = TypeVar("T")


class StoredRecord(BaseModel, Generic[T]):
	"""Persistence envelope; timestamp is epoch milliseconds."""
	value: T
	timestamp: int


class HistoryEntry(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	problem: str
	user_answer: float
	correct_answer: float
	is_correct: bool
	difficulty: Difficulty
	timestamp: datetime


class DifficultyScore(BaseModel):
	total: int = Field(default=0, ge=0)
	correct: int = Field(default=0, ge=0)

	@model_validator(mode="after")
	def _correct_within_total(self) -> "DifficultyScore":
		if self.correct > self.total:
			raise ValueError("correct cannot exceed total")
		return self


def _zeroed_tiers() -> Dict[Difficulty, DifficultyScore]:
	return {d: DifficultyScore() for d in DIFFICULTIES}


class ScoreStats(BaseModel):
	total: int = Field(default=0, ge=0)
	correct: int = Field(default=0, ge=0)
	by_difficulty: Dict[Difficulty, DifficultyScore] = Field(default_factory=_zeroed_tiers)

	@model_validator(mode="after")
	def _consistent_totals(self) -> "ScoreStats":
		for d in DIFFICULTIES:
			self.by_difficulty.setdefault(d, DifficultyScore())
		if self.total != sum(s.total for s in self.by_difficulty.values()):
			raise ValueError("total must equal the sum of per-difficulty totals")
		if self.correct != sum(s.correct for s in self.by_difficulty.values()):
			raise ValueError("correct must equal the sum of per-difficulty corrects")
		if self.correct > self.total:
			raise ValueError("correct cannot exceed total")
		return self


class SessionSnapshot(BaseModel):
	history: List[HistoryEntry] = Field(default_factory=list)
	scores: ScoreStats = Field(default_factory=ScoreStats)


class ProblemPayload(BaseModel):
	problem_text: str
	final_answer: float
	hint: Optional[str] = None
	steps: Optional[List[str]] = None


# Round-trip results. The client never raises for service or decode errors;
# callers branch on `success`.

class ProblemSuccess(BaseModel):
	success: Literal[True] = True
	data: ProblemPayload
	difficulty: Difficulty


class Failure(BaseModel):
	success: Literal[False] = False
	error: str


ProblemResult = Union[ProblemSuccess, Failure]


class FeedbackResult(BaseModel):
	is_correct: bool
	feedback: str
