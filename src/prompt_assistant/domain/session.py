"""Session snapshots and the pure handlers that advance them.

A ``SessionSnapshot`` is never mutated. Each handler takes the current
snapshot and returns the next one, so the controller only ever swaps a
single reference and a clear is a single replacement of log and counter.
"""

from datetime import datetime
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .models import (
    AssistantMessage,
    ErrorMessage,
    Message,
    MessageMetadata,
    Role,
    UserMessage,
    utcnow,
)

SessionState = Literal["idle", "generating"]

WELCOME_MESSAGE = (
    "Hello! I'm your prompt assistant. Describe the behavior you need and "
    "I'll draft a reusable prompt template for it."
)
WELCOME_SUGGESTIONS = (
    "Create a lead qualification prompt",
    "Generate a customer service response",
    "Build a sales follow-up template",
    "Design a data analysis prompt",
)

_MESSAGE_TYPES = {
    "user": UserMessage,
    "assistant": AssistantMessage,
    "error": ErrorMessage,
}


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    messages: Tuple[Message, ...] = ()
    counter: int = 0
    pending_token: Optional[str] = None
    user_input: str = ""
    welcomed: bool = False

    @property
    def state(self) -> SessionState:
        return "generating" if self.pending_token is not None else "idle"

    @property
    def is_generating(self) -> bool:
        return self.pending_token is not None

    def find(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None


def message_id(counter: int, created_at: datetime) -> str:
    return f"msg_{counter}_{int(created_at.timestamp() * 1000)}"


def append_message(
    snapshot: SessionSnapshot,
    role: Role,
    content: str,
    metadata: Optional[MessageMetadata] = None,
    now: Optional[datetime] = None,
) -> Tuple[SessionSnapshot, Message]:
    """Append one message, minting its id from the next counter value."""
    created_at = now or utcnow()
    counter = snapshot.counter + 1
    fields = {
        "id": message_id(counter, created_at),
        "content": content,
        "created_at": created_at,
    }
    if metadata is not None:
        if role != "assistant":
            raise ValueError("metadata is only carried by assistant messages")
        fields["metadata"] = metadata
    message = _MESSAGE_TYPES[role](**fields)
    next_snapshot = snapshot.model_copy(
        update={"messages": snapshot.messages + (message,), "counter": counter}
    )
    return next_snapshot, message


def seed_welcome(
    snapshot: SessionSnapshot, with_suggestions: bool = True
) -> SessionSnapshot:
    metadata = (
        MessageMetadata(suggestions=WELCOME_SUGGESTIONS) if with_suggestions else None
    )
    snapshot, _ = append_message(snapshot, "assistant", WELCOME_MESSAGE, metadata)
    return snapshot.model_copy(update={"welcomed": True})


def begin_generation(snapshot: SessionSnapshot, token: str) -> SessionSnapshot:
    if snapshot.is_generating:
        raise RuntimeError("a generation is already outstanding")
    return snapshot.model_copy(update={"pending_token": token})


def is_current(snapshot: SessionSnapshot, token: str) -> bool:
    return snapshot.pending_token == token


def end_generation(snapshot: SessionSnapshot, token: str) -> SessionSnapshot:
    """Return to idle and clear the input, unless ``token`` went stale."""
    if not is_current(snapshot, token):
        return snapshot
    return snapshot.model_copy(update={"pending_token": None, "user_input": ""})


def set_input(snapshot: SessionSnapshot, text: str) -> SessionSnapshot:
    return snapshot.model_copy(update={"user_input": text})


def reset(snapshot: SessionSnapshot) -> SessionSnapshot:
    """Empty log, counter back to zero, outstanding generation forgotten."""
    return SessionSnapshot(welcomed=snapshot.welcomed)
