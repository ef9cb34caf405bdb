from __future__ import annotations
import logging
from typing import Dict, List, Optional

from .problems import ProblemClient
from .schemas import Difficulty, HistoryEntry, ScoreStats
from .session import PersistentSession
from .state import (
	DUPLICATE_MESSAGE,
	AppState,
	ClearAnswer,
	GenerateFailed,
	GenerateStarted,
	GenerateSucceeded,
	SelectDifficulty,
	SelectTab,
	SubmitFailed,
	SubmitRejected,
	SubmitStarted,
	SubmitSucceeded,
	Tab,
	ToggleHint,
	ToggleSteps,
	reduce,
	validate_submission,
)
from .storage import ExpiringStore

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Please wait for the current request to finish."
ERROR_MESSAGE = "An error occurred. Please try again."


class TutorBusy(Exception):
	pass


class SubmissionRejected(Exception):
	def __init__(self, message: str, *, duplicate: bool = False) -> None:
		super().__init__(message)
		self.message = message
		self.duplicate = duplicate


class TutorSession:
	def __init__(self, learner_id: str, store: ExpiringStore) -> None:
		self.learner_id = learner_id
		self.state = AppState()
		self.persistent = PersistentSession(store, namespace=learner_id)
		self.last_active = store.now()


class TutorService:
	"""Owns per-learner sessions and drives them through the reducer."""

	def __init__(self, client: ProblemClient, store: ExpiringStore) -> None:
		self.client = client
		self.store = store
		self._sessions: Dict[str, TutorSession] = {}

	def session(self, learner_id: str) -> TutorSession:
		now = self.store.now()
		self._evict_idle(now)
		sess = self._sessions.get(learner_id)
		if sess is None:
			sess = TutorSession(learner_id, self.store)
			self._sessions[learner_id] = sess
		elif sess.persistent.expired() and not sess.state.is_loading:
			logger.info("Stored history for %s expired; reloading", learner_id)
			sess.persistent.reload()
		sess.last_active = now
		return sess

	def _evict_idle(self, now: int) -> None:
		# Sessions with a request in flight stay until it finishes
		idle = [
			learner_id for learner_id, sess in self._sessions.items()
			if not sess.state.is_loading and now - sess.last_active > self.store.expiry_ms
		]
		for learner_id in idle:
			del self._sessions[learner_id]
		if idle:
			logger.info("Dropped %d idle sessions", len(idle))

	def state(self, learner_id: str) -> AppState:
		return self.session(learner_id).state

	def select_difficulty(self, learner_id: str, difficulty: Difficulty | str) -> AppState:
		sess = self.session(learner_id)
		sess.state = reduce(sess.state, SelectDifficulty(difficulty=Difficulty(difficulty)))
		return sess.state

	def select_tab(self, learner_id: str, tab: Tab) -> AppState:
		sess = self.session(learner_id)
		sess.state = reduce(sess.state, SelectTab(tab=tab))
		return sess.state

	def toggle_hint(self, learner_id: str) -> AppState:
		sess = self.session(learner_id)
		sess.state = reduce(sess.state, ToggleHint())
		return sess.state

	def toggle_steps(self, learner_id: str) -> AppState:
		sess = self.session(learner_id)
		sess.state = reduce(sess.state, ToggleSteps())
		return sess.state

	def clear_answer(self, learner_id: str) -> AppState:
		sess = self.session(learner_id)
		sess.state = reduce(sess.state, ClearAnswer())
		return sess.state

	async def generate(self, learner_id: str, difficulty: Optional[Difficulty | str] = None) -> AppState:
		sess = self.session(learner_id)
		if sess.state.is_loading:
			raise TutorBusy(BUSY_MESSAGE)
		if difficulty is not None:
			sess.state = reduce(sess.state, SelectDifficulty(difficulty=Difficulty(difficulty)))
		sess.state = reduce(sess.state, GenerateStarted())
		try:
			result = await self.client.request_problem(sess.state.difficulty)
		except Exception:
			logger.exception("Problem generation failed for %s", learner_id)
			sess.state = reduce(sess.state, GenerateFailed(message=ERROR_MESSAGE))
			return sess.state
		if result.success:
			sess.state = reduce(sess.state, GenerateSucceeded(problem=result.data, difficulty=result.difficulty))
		else:
			sess.state = reduce(sess.state, GenerateFailed(message=result.error))
		return sess.state

	async def submit(self, learner_id: str, raw_answer: str) -> AppState:
		sess = self.session(learner_id)
		if sess.state.is_loading:
			raise TutorBusy(BUSY_MESSAGE)
		value, rejection = validate_submission(sess.state, raw_answer)
		if rejection is not None:
			sess.state = reduce(sess.state, SubmitRejected(message=rejection))
			raise SubmissionRejected(rejection, duplicate=rejection == DUPLICATE_MESSAGE)
		problem = sess.state.problem
		difficulty = sess.state.problem_difficulty or sess.state.difficulty
		sess.state = reduce(sess.state, SubmitStarted(answer=raw_answer))
		try:
			result = await self.client.request_feedback(problem.problem_text, problem.final_answer, value)
		except Exception:
			logger.exception("Answer check failed for %s", learner_id)
			sess.state = reduce(sess.state, SubmitFailed())
			return sess.state
		sess.persistent.record_submission(
			problem.problem_text,
			value,
			problem.final_answer,
			difficulty,
			result.is_correct,
		)
		sess.state = reduce(sess.state, SubmitSucceeded(
			answer=raw_answer,
			is_correct=result.is_correct,
			feedback=result.feedback,
		))
		return sess.state

	def history(self, learner_id: str) -> List[HistoryEntry]:
		return self.session(learner_id).persistent.aggregator.history

	def stats(self, learner_id: str) -> ScoreStats:
		return self.session(learner_id).persistent.aggregator.scores

	def accuracy(self, learner_id: str, difficulty: Optional[Difficulty | str] = None) -> int:
		return self.session(learner_id).persistent.aggregator.accuracy(difficulty)

	def clear_history(self, learner_id: str) -> None:
		self.session(learner_id).persistent.reset()
		logger.info("Cleared history for %s", learner_id)
