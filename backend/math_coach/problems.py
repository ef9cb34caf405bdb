from __future__ import annotations
import json
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Generic, Optional, Protocol, TypeVar, Union

from pydantic import ValidationError

from .gemini_client import GeminiError
from .schemas import Difficulty, Failure, FeedbackResult, ProblemPayload, ProblemResult, ProblemSuccess
from .settings import settings

logger = logging.getLogger(__name__)

# Answers within this absolute distance of the expected value count as correct
ANSWER_TOLERANCE = 0.01

CORRECT_FEEDBACK = "Excellent work! Your answer is correct. You demonstrated strong problem-solving skills!"
FALLBACK_FEEDBACK = "Good try! Check your calculations and try again."
GENERATE_RETRY_MESSAGE = "Failed to generate problem. Please try again."

DIFFICULTY_GUIDELINES = {
	Difficulty.easy: "EASY - Simple calculations, 2-3 steps, numbers under 1000. Topics: basic operations, simple fractions, basic decimals, simple percentages (10%, 25%, 50%).",
	Difficulty.medium: "MEDIUM - Standard Primary 5, 3-4 steps, moderate numbers. Topics: mixed operations, fractions, decimals, percentage, area, volume.",
	Difficulty.hard: "HARD - Advanced Primary 5, 4-6 steps, large numbers. Topics: complex fractions, multi-step percentage, rate, composite figures, multi-angle problems.",
}


class TextGenerator(Protocol):
	async def generate(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str: ...


class DecodeError(ValueError):
	pass


T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
	value: T


@dataclass(frozen=True)
class Err(Generic[E]):
	error: E


DecodeResult = Union[Ok[ProblemPayload], Err[DecodeError]]


def strip_code_fences(text: Optional[str]) -> str:
	if not text:
		return ""
	text = re.sub(r"```json\n?", "", text)
	text = re.sub(r"```\n?", "", text)
	return text.strip()


def decode_problem(text: Optional[str]) -> DecodeResult:
	"""Parse a model reply into a ProblemPayload without raising."""
	clean = strip_code_fences(text)
	if not clean:
		return Err(DecodeError("empty reply"))
	try:
		data: Any = json.loads(clean)
	except ValueError as err:
		return Err(DecodeError(f"reply is not valid JSON: {err}"))
	if not isinstance(data, dict):
		return Err(DecodeError("reply must be a single JSON object"))
	problem_text = data.get("problem_text")
	if not isinstance(problem_text, str) or not problem_text.strip():
		return Err(DecodeError("problem_text is missing"))
	answer = data.get("final_answer")
	if isinstance(answer, bool) or answer is None:
		return Err(DecodeError("final_answer is missing"))
	try:
		final_answer = float(answer)
	except (TypeError, ValueError):
		return Err(DecodeError(f"final_answer is not a number: {answer!r}"))
	if not math.isfinite(final_answer):
		return Err(DecodeError(f"final_answer is not finite: {answer!r}"))
	hint = data.get("hint")
	steps = data.get("steps")
	if steps is not None and not isinstance(steps, list):
		return Err(DecodeError("steps must be a list"))
	if steps and not all(isinstance(s, str) for s in steps):
		return Err(DecodeError("steps must be strings"))
	try:
		payload = ProblemPayload(
			problem_text=problem_text.strip(),
			final_answer=final_answer,
			hint=hint.strip() if isinstance(hint, str) and hint.strip() else None,
			steps=[s.strip() for s in steps] if steps else None,
		)
	except ValidationError as err:
		return Err(DecodeError(str(err)))
	return Ok(payload)


def problem_prompt(difficulty: Difficulty, seed: Optional[int] = None) -> str:
	unique_seed = seed if seed is not None else int(time.time() * 1000)
	return (
		"You are creating a math word problem for Primary 5 students in Singapore (10-11 years old) following the Singapore Mathematics Syllabus.\n\n"
		f"DIFFICULTY: {difficulty.value.upper()}\n"
		f"{DIFFICULTY_GUIDELINES[difficulty]}\n\n"
		"Requirements:\n"
		"- Create a realistic, engaging word problem with a real-world context\n"
		"- The problem should be solvable and have ONE clear numerical answer\n"
		"- Use Singapore context when relevant (SGD for money, Singapore locations, etc.)\n\n"
		"CRITICAL: You must respond ONLY with valid JSON. No other text before or after.\n\n"
		"Return in this EXACT JSON format:\n"
		"{\n"
		'  "problem_text": "Clear word problem statement here",\n'
		'  "final_answer": numeric_answer_only,\n'
		'  "hint": "A helpful hint that guides the student without revealing the full solution",\n'
		'  "steps": ["Step 1 explanation", "Step 2 explanation", "Step 3 explanation"]\n'
		"}\n"
		"Important:\n"
		"- final_answer must be ONLY a number (e.g., 45, 12.5, 250). Do NOT include units, words, or explanations.\n"
		"- hint should be encouraging and age-appropriate\n"
		"- steps should be clear, sequential instructions showing how to solve the problem\n\n"
		f"**DIVERSITY CONSTRAINT:** The problem generated MUST be unique. Random seed: {unique_seed}"
	)


def _fmt_number(value: float) -> str:
	return str(int(value)) if float(value).is_integer() else str(value)


def feedback_prompt(problem_text: str, correct_answer: float, user_answer: float) -> str:
	return (
		"A Primary 5 student in Singapore solved this math problem incorrectly:\n\n"
		f"Problem: {problem_text}\n"
		f"Correct Answer: {_fmt_number(correct_answer)}\n"
		f"Student's Answer: {_fmt_number(user_answer)}\n\n"
		"Give brief (1 sentence), encouraging feedback with a gentle hint. Age-appropriate for 10-11 year olds.\n\n"
		"Return only the feedback text, no JSON or extra formatting."
	)


def is_correct_answer(user_answer: float, correct_answer: float) -> bool:
	return abs(user_answer - correct_answer) < ANSWER_TOLERANCE


class ProblemClient:
	def __init__(self, generator: TextGenerator, *, feedback_generator: Optional[TextGenerator] = None) -> None:
		self.generator = generator
		self.feedback_generator = feedback_generator or generator

	async def request_problem(self, difficulty: Difficulty | str) -> ProblemResult:
		difficulty = Difficulty(difficulty)
		started = time.monotonic()
		try:
			raw = await self.generator.generate(
				problem_prompt(difficulty),
				temperature=settings.problem_temperature,
			)
		except GeminiError as err:
			logger.warning("Error generating math problem: %s", err)
			return Failure(error=GENERATE_RETRY_MESSAGE)
		logger.info("Generated %s problem in %dms", difficulty.value, (time.monotonic() - started) * 1000)
		decoded = decode_problem(raw)
		if isinstance(decoded, Err):
			logger.warning("Malformed problem reply: %s", decoded.error)
			return Failure(error=GENERATE_RETRY_MESSAGE)
		return ProblemSuccess(data=decoded.value, difficulty=difficulty)

	async def request_feedback(self, problem_text: str, correct_answer: float, user_answer: float) -> FeedbackResult:
		if is_correct_answer(user_answer, correct_answer):
			return FeedbackResult(is_correct=True, feedback=CORRECT_FEEDBACK)
		try:
			raw = await self.feedback_generator.generate(
				feedback_prompt(problem_text, correct_answer, user_answer),
				temperature=settings.feedback_temperature,
				max_output_tokens=settings.feedback_max_output_tokens,
			)
		except GeminiError as err:
			logger.warning("Error generating feedback: %s", err)
			raw = ""
		return FeedbackResult(is_correct=False, feedback=strip_code_fences(raw) or FALLBACK_FEEDBACK)
