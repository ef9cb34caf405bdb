"""
Test fixtures for the math coach backend.

Gemini is never called: the round-trip client is given a scripted fake
generator, and the store runs on an in-memory backend with a fake clock.
"""

from __future__ import annotations

import json
from typing import List, Optional, Union

import pytest

from math_coach.gemini_client import GeminiError
from math_coach.problems import ProblemClient
from math_coach.storage import ExpiringStore, MemoryBackend
from math_coach.tutor import TutorService


PROBLEM_REPLY = "```json\n" + json.dumps({
    "problem_text": "Mei Ling buys 3 packets of stickers at $2.50 each. How much does she pay?",
    "final_answer": 7.5,
    "hint": "Multiply the price of one packet by the number of packets.",
    "steps": ["Each packet costs $2.50", "3 x 2.50 = 7.50", "She pays $7.50"],
}) + "\n```"


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeGenerator:
    """Returns scripted replies in order; an Exception entry is raised instead."""

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[dict] = []
        self.closed = False

    async def generate(self, prompt: str, *, temperature=None, max_output_tokens=None) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_output_tokens": max_output_tokens})
        if not self.replies:
            raise GeminiError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend, clock):
    return ExpiringStore(backend, expiry=12 * 60 * 60 * 1000, clock=clock)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def problem_client(generator):
    return ProblemClient(generator)


@pytest.fixture
def tutor(problem_client, store):
    return TutorService(problem_client, store)


@pytest.fixture
def client(tutor):
    """FastAPI test client wired to the fake tutor service."""
    from fastapi.testclient import TestClient
    from math_coach.main import app

    with TestClient(app) as c:
        app.state.tutor = tutor
        yield c
