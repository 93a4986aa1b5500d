"""Chat session controller.

Owns the message log and the idle/generating turn-taking of one session.
A submission appends the user message before awaiting the generation
collaborator, and every path that enters ``generating`` leaves it again in
a ``finally`` block.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from uuid import uuid4

import pydantic
import structlog

from ..domain import session as handlers
from ..domain.errors import ClipboardError, EmptyInputError, GenerationFailure
from ..domain.events import EventEmitter, GeneratedEvent, LogChangedEvent, MessageActionEvent
from ..domain.models import (
    GenerationRequest,
    GenerationResult,
    Message,
    MessageMetadata,
)
from ..domain.session import SessionSnapshot, SessionState
from .clipboard import Clipboard, MemoryClipboard

logger = structlog.get_logger()

GENERIC_FAILURE = "Failed to generate prompt"
NO_RESPONSE = "No response received from generation service"

Generator = Callable[[GenerationRequest], Awaitable[Any]]


def describe_failure(error: BaseException) -> str:
    """Best human-readable diagnostic for a failed generation."""
    body = getattr(error, "body", None)
    if isinstance(body, Mapping) and body.get("message"):
        return str(body["message"])
    return str(error) or GENERIC_FAILURE


def parse_result(result: Any) -> Tuple[str, MessageMetadata]:
    """Validate a collaborator reply, raising ``GenerationFailure`` if it has no artifact."""
    if result is None:
        raise GenerationFailure(NO_RESPONSE)
    if not isinstance(result, GenerationResult):
        try:
            result = GenerationResult.model_validate(result)
        except pydantic.ValidationError:
            raise GenerationFailure(NO_RESPONSE)
    if not result.generated_prompt or not result.generated_prompt.strip():
        raise GenerationFailure(NO_RESPONSE)
    metadata = MessageMetadata(
        confidence=result.confidence, suggestions=tuple(result.suggestions or ())
    )
    return result.generated_prompt, metadata


class ChatSessionController:
    """Message log and submission protocol for one chat session."""

    def __init__(
        self,
        generate: Generator,
        events: Optional[EventEmitter] = None,
        clipboard: Optional[Clipboard] = None,
        context: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self._generate = generate
        self.events = events or EventEmitter()
        self.clipboard = clipboard or MemoryClipboard()
        self.context = context or {}
        self.session_id = session_id
        self.snapshot = SessionSnapshot()

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.snapshot.messages

    @property
    def state(self) -> SessionState:
        return self.snapshot.state

    @property
    def is_generating(self) -> bool:
        return self.snapshot.is_generating

    @property
    def user_input(self) -> str:
        return self.snapshot.user_input

    def _commit(self, snapshot: SessionSnapshot) -> None:
        changed = snapshot.messages != self.snapshot.messages
        self.snapshot = snapshot
        if changed:
            self.events.emit(LogChangedEvent(messages=snapshot.messages))

    def activate(self) -> bool:
        """Seed the welcome message once, on the first activation of an empty log."""
        if self.snapshot.welcomed or self.snapshot.messages:
            return False
        self._commit(handlers.seed_welcome(self.snapshot))
        logger.info("session_activated", session_id=self.session_id)
        return True

    def set_input(self, text: str) -> None:
        self.snapshot = handlers.set_input(self.snapshot, text)

    def clear(self) -> None:
        """Reset log and id counter, then re-seed the welcome message."""
        was_generating = self.snapshot.is_generating
        self._commit(
            handlers.seed_welcome(handlers.reset(self.snapshot), with_suggestions=False)
        )
        logger.info(
            "session_cleared",
            session_id=self.session_id,
            abandoned_generation=was_generating,
        )

    def _check_query(self, query: str) -> None:
        if not query or not query.strip():
            raise EmptyInputError("query is blank")

    async def submit(self, query: Optional[str] = None) -> bool:
        """Submit ``query`` (or the pending input) for generation.

        Returns ``False`` without touching the session when the query is
        blank or a generation is already outstanding.
        """
        text = self.snapshot.user_input if query is None else query
        try:
            self._check_query(text)
        except EmptyInputError:
            logger.debug("submit_ignored", session_id=self.session_id, reason="empty_input")
            return False
        if self.snapshot.is_generating:
            logger.info("submit_ignored", session_id=self.session_id, reason="generating")
            return False

        token = uuid4().hex
        snapshot, _ = handlers.append_message(self.snapshot, "user", text)
        self._commit(handlers.begin_generation(snapshot, token))
        logger.info("generation_started", session_id=self.session_id, query_length=len(text))

        request = GenerationRequest(user_query=text, context_data=json.dumps(self.context))
        try:
            result = await self._generate(request)
            artifact, metadata = parse_result(result)
            if not handlers.is_current(self.snapshot, token):
                logger.info("stale_generation_discarded", session_id=self.session_id)
                return True
            snapshot, _ = handlers.append_message(
                self.snapshot, "assistant", artifact, metadata
            )
            self._commit(snapshot)
            logger.info(
                "prompt_generated",
                session_id=self.session_id,
                prompt_length=len(artifact),
                confidence=metadata.confidence,
            )
            self.events.emit(GeneratedEvent(prompt=artifact, user_query=text))
        except Exception as e:
            if not handlers.is_current(self.snapshot, token):
                logger.info("stale_generation_discarded", session_id=self.session_id, error=str(e))
                return True
            diagnostic = describe_failure(e)
            logger.error(
                "generation_failed",
                session_id=self.session_id,
                error=diagnostic,
                error_type=type(e).__name__,
            )
            snapshot, _ = handlers.append_message(self.snapshot, "error", diagnostic)
            self._commit(snapshot)
        except asyncio.CancelledError:
            if handlers.is_current(self.snapshot, token):
                logger.warning("generation_cancelled", session_id=self.session_id)
                snapshot, _ = handlers.append_message(self.snapshot, "error", GENERIC_FAILURE)
                self._commit(snapshot)
            raise
        finally:
            self.snapshot = handlers.end_generation(self.snapshot, token)
        return True

    async def request_action(self, kind: str, message_id: str) -> bool:
        """Dispatch a copy/edit/regenerate request raised on a message."""
        if kind not in ("copy", "edit", "regenerate"):
            raise ValueError(f"Unknown message action: {kind}")
        self.events.emit(MessageActionEvent(action=kind, message_id=message_id))

        if kind == "copy":
            return await self.copy_message(message_id)
        elif kind == "edit":
            return self.edit_message(message_id)
        return await self.regenerate(message_id)

    async def copy_message(self, message_id: str) -> bool:
        message = self.snapshot.find(message_id)
        if message is None:
            logger.warning("message_not_found", session_id=self.session_id, message_id=message_id)
            return False
        try:
            await self.clipboard.write_text(message.content)
        except ClipboardError as e:
            logger.warning("message_copy_failed", message_id=message_id, error=str(e))
            self.events.notify("Error", "Failed to copy message", "error")
            return False
        self.events.notify("Copied!", "Message copied to clipboard", "success")
        return True

    def edit_message(self, message_id: str) -> bool:
        message = self.snapshot.find(message_id)
        if message is None or message.role != "user":
            return False
        self.set_input(message.content)
        return True

    async def regenerate(self, message_id: str) -> bool:
        if not self.edit_message(message_id):
            return False
        return await self.submit(self.snapshot.user_input)
