"""Shared fixtures: scripted generation collaborators."""

import asyncio
from typing import List

import pytest

from prompt_assistant.domain.events import EventEmitter
from prompt_assistant.domain.models import GenerationRequest, GenerationResult


class ScriptedGenerator:
    """Generation collaborator that replays queued replies or errors."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: List[GenerationRequest] = []

    async def __call__(self, request: GenerationRequest):
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else GenerationResult(
            generated_prompt=f"Prompt for: {request.user_query}"
        )
        if isinstance(reply, BaseException):
            raise reply
        return reply


class GatedGenerator:
    """Generation collaborator that waits until released."""

    def __init__(self):
        self.gates: List[asyncio.Event] = []
        self.requests: List[GenerationRequest] = []

    async def __call__(self, request: GenerationRequest):
        gate = asyncio.Event()
        self.gates.append(gate)
        self.requests.append(request)
        await gate.wait()
        return GenerationResult(
            generated_prompt=f"Prompt for: {request.user_query}",
            confidence=0.9,
            suggestions=["Make it shorter"],
        )

    def release(self, index: int = -1) -> None:
        self.gates[index].set()


class RemoteError(Exception):
    """Error shaped like a remote call failure with a payload body."""

    def __init__(self, body):
        super().__init__("remote call failed")
        self.body = body


@pytest.fixture
def events():
    emitter = EventEmitter()
    emitter.received = []
    emitter.subscribe(emitter.received.append)
    return emitter


@pytest.fixture
def scripted():
    return ScriptedGenerator()


@pytest.fixture
def gated():
    return GatedGenerator()
