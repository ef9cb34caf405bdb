from __future__ import annotations
from typing import Optional

from .aggregator import SessionAggregator
from .schemas import Difficulty, HistoryEntry, SessionSnapshot
from .settings import settings
from .storage import ExpiringStore


class PersistentSession:
	"""Aggregator with write-through persistence to an ExpiringStore.

	State is loaded on construction. After every mutation both the
	history and the scores are written back under their keys. Once the
	last write is older than the store expiry the in-memory copy is stale
	and must be reloaded.
	"""

	def __init__(
		self,
		store: ExpiringStore,
		*,
		namespace: Optional[str] = None,
		history_key: Optional[str] = None,
		scores_key: Optional[str] = None,
	) -> None:
		self.store = store
		prefix = f"{namespace}:" if namespace else ""
		self.history_key = prefix + (history_key or settings.history_key)
		self.scores_key = prefix + (scores_key or settings.scores_key)
		self.written_at: Optional[int] = None
		self.reload()

	def reload(self) -> None:
		history = self.store.get_record(self.history_key)
		scores = self.store.get_record(self.scores_key)
		self.aggregator = SessionAggregator()
		self.aggregator.load(
			history.value if history is not None else None,
			scores.value if scores is not None else None,
		)
		stamps = [r.timestamp for r in (history, scores) if r is not None]
		self.written_at = min(stamps) if stamps else None

	def expired(self) -> bool:
		return self.written_at is not None and self.store.now() - self.written_at > self.store.expiry_ms

	def snapshot(self) -> SessionSnapshot:
		return self.aggregator.snapshot()

	def record_submission(
		self,
		problem_text: str,
		user_answer: float,
		correct_answer: float,
		difficulty: Difficulty | str,
		is_correct: bool,
	) -> HistoryEntry:
		entry = self.aggregator.record_submission(problem_text, user_answer, correct_answer, difficulty, is_correct)
		self._persist()
		return entry

	def reset(self) -> None:
		self.aggregator.reset()
		self._persist()

	def _persist(self) -> None:
		snap = self.aggregator.snapshot().model_dump(mode="json")
		self.store.put(self.history_key, snap["history"])
		self.store.put(self.scores_key, snap["scores"])
		self.written_at = self.store.now()
