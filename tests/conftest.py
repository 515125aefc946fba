"""Shared fixtures: deterministic reply generators and a fresh registry per test."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from turingchat.factory import create_app
from turingchat.services.registry import SessionRegistry

FALLBACK = "fallback reply"


class FakeReplyGenerator:
    """Answers "reply N" and records what it was asked."""

    def __init__(self):
        self.calls = []

    async def generate(self, session_id, transcript, text):
        self.calls.append((session_id, list(transcript), text))
        return f"reply {len(self.calls)}"


class FailingReplyGenerator:
    async def generate(self, session_id, transcript, text):
        raise RuntimeError("provider down")


class SlowReplyGenerator:
    def __init__(self, delay: float):
        self.delay = delay

    async def generate(self, session_id, transcript, text):
        await asyncio.sleep(self.delay)
        return "slow reply"


def make_registry(generator=None, reply_timeout: float = 5.0) -> SessionRegistry:
    return SessionRegistry(
        generator or FakeReplyGenerator(),
        human_prefix="human",
        bot_prefix="bot_",
        reply_timeout=reply_timeout,
        fallback_reply=FALLBACK,
    )


@pytest.fixture
def generator():
    return FakeReplyGenerator()


@pytest.fixture
def registry(generator):
    return make_registry(generator)


@pytest.fixture
def client(registry):
    with TestClient(create_app(registry=registry)) as c:
        yield c
