from __future__ import annotations
from fastapi import Header, HTTPException, Request

from ..tutor import TutorService


def get_tutor(request: Request) -> TutorService:
	return request.app.state.tutor


def get_learner_id(x_learner_id: str | None = Header(default=None)) -> str:
	# Each learner id gets its own history/scores keys in the store
	learner = (x_learner_id or "local").strip()
	if not learner or len(learner) > 128:
		raise HTTPException(status_code=400, detail="X-Learner-Id must be 1-128 characters")
	return learner
