from __future__ import annotations
from datetime import timedelta
import asyncio
import logging

from fastapi import FastAPI

from . import db
from .cleanup import purge_expired
from .gemini_client import GeminiClient, UnconfiguredClient
from .problems import ProblemClient
from .routers import health, history, tutor as tutor_router
from .settings import settings
from .storage import build_store
from .tutor import TutorService

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Primary Math Coach API")
app.include_router(health.router)
app.include_router(tutor_router.router)
app.include_router(history.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"storage_backend": settings.storage_backend,
	}


def build_service() -> TutorService:
	if settings.gemini_api_key:
		problem_client = ProblemClient(
			GeminiClient(model=settings.gemini_model),
			feedback_generator=GeminiClient(model=settings.gemini_feedback_model),
		)
	else:
		logger.warning("GEMINI_API_KEY is not configured; problem generation will fail")
		problem_client = ProblemClient(UnconfiguredClient())
	return TutorService(problem_client, build_store(settings))


def _purge_once() -> None:
	try:
		session = next(db.get_db())
		try:
			purge_expired(session, timedelta(seconds=settings.storage_expiry_seconds))
		finally:
			session.close()
	except Exception as err:
		logger.warning("Expired entry purge failed: %s", err)


async def _cleanup_watcher():
	# Startup already ran one purge; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_purge_once()


@app.on_event("startup")
async def startup_event():
	app.state.tutor = build_service()
	if settings.storage_backend.lower() == "database":
		_purge_once()
		app.state.cleanup_task = asyncio.create_task(_cleanup_watcher())


@app.on_event("shutdown")
async def shutdown_event():
	task = getattr(app.state, "cleanup_task", None)
	if task is not None:
		task.cancel()
	service: TutorService | None = getattr(app.state, "tutor", None)
	if service is not None:
		await service.client.generator.aclose()
		if service.client.feedback_generator is not service.client.generator:
			await service.client.feedback_generator.aclose()
