from __future__ import annotations
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from .schemas import (
	Difficulty,
	DifficultyScore,
	HistoryEntry,
	ScoreStats,
	SessionSnapshot,
)

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(List[HistoryEntry])


def _entry_id(now: datetime) -> str:
	millis = int(now.timestamp() * 1000)
	return f"{millis}-{uuid.uuid4().hex[:8]}"


class SessionAggregator:
	"""Newest-first submission history plus accuracy counters per difficulty."""

	def __init__(self) -> None:
		self._history: List[HistoryEntry] = []
		self._scores = ScoreStats()

	@property
	def history(self) -> List[HistoryEntry]:
		return list(self._history)

	@property
	def scores(self) -> ScoreStats:
		return self._scores.model_copy(deep=True)

	def snapshot(self) -> SessionSnapshot:
		return SessionSnapshot(history=self.history, scores=self.scores)

	def record_submission(
		self,
		problem_text: str,
		user_answer: float,
		correct_answer: float,
		difficulty: Difficulty | str,
		is_correct: bool,
	) -> HistoryEntry:
		difficulty = Difficulty(difficulty)
		now = datetime.now(timezone.utc)
		entry = HistoryEntry(
			id=_entry_id(now),
			problem=problem_text,
			user_answer=user_answer,
			correct_answer=correct_answer,
			is_correct=bool(is_correct),
			difficulty=difficulty,
			timestamp=now,
		)
		hit = 1 if entry.is_correct else 0
		tiers = {d: s.model_copy() for d, s in self._scores.by_difficulty.items()}
		tier = tiers[difficulty]
		tiers[difficulty] = DifficultyScore(total=tier.total + 1, correct=tier.correct + hit)
		scores = ScoreStats(
			total=self._scores.total + 1,
			correct=self._scores.correct + hit,
			by_difficulty=tiers,
		)
		# Both built and validated above; swap together
		self._history = [entry, *self._history]
		self._scores = scores
		return entry

	def reset(self) -> None:
		self._history = []
		self._scores = ScoreStats()

	def load(self, history_snapshot: Any = None, scores_snapshot: Any = None) -> None:
		history: Optional[List[HistoryEntry]] = None
		scores: Optional[ScoreStats] = None
		if history_snapshot is not None:
			try:
				history = _history_adapter.validate_python(history_snapshot)
			except ValidationError as err:
				logger.warning("Ignoring invalid history snapshot: %s", err.error_count())
		if scores_snapshot is not None:
			try:
				scores = ScoreStats.model_validate(scores_snapshot)
			except ValidationError as err:
				logger.warning("Ignoring invalid scores snapshot: %s", err.error_count())
		if history is not None:
			self._history = history
		if scores is not None:
			self._scores = scores

	def accuracy(self, difficulty: Difficulty | str | None = None) -> int:
		"""Whole-number percentage correct, rounded half up; 0 with no attempts."""
		if difficulty is None:
			bucket = DifficultyScore(total=self._scores.total, correct=self._scores.correct)
		else:
			bucket = self._scores.by_difficulty[Difficulty(difficulty)]
		if bucket.total == 0:
			return 0
		return math.floor(bucket.correct * 100 / bucket.total + 0.5)

