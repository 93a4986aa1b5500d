"""Outbound events and the emitter that delivers them."""

from typing import Callable, List, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict

from .models import ActionKind, Message, Severity, TemplateDraft

logger = structlog.get_logger()


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class GeneratedEvent(_Event):
    prompt: str
    user_query: str


class MessageActionEvent(_Event):
    action: ActionKind
    message_id: str


class LogChangedEvent(_Event):
    messages: Tuple[Message, ...]


class TemplateSavedEvent(_Event):
    template_id: str
    template_data: TemplateDraft


class TemplateCopiedEvent(_Event):
    template_name: str
    template_content: str


class Notification(_Event):
    title: str
    message: str
    severity: Severity = "info"


Event = Union[
    GeneratedEvent,
    MessageActionEvent,
    LogChangedEvent,
    TemplateSavedEvent,
    TemplateCopiedEvent,
    Notification,
]
Listener = Callable[[Event], None]


class EventEmitter:
    """Fan-out of engine events to synchronous listeners."""

    def __init__(self) -> None:
        self._listeners: List[Tuple[type, Listener]] = []

    def subscribe(self, listener: Listener, event_type: type = _Event) -> Callable[[], None]:
        """Register ``listener`` for ``event_type``; returns an unsubscribe callable."""
        entry = (event_type, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def emit(self, event: Event) -> None:
        for event_type, listener in list(self._listeners):
            if not isinstance(event, event_type):
                continue
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "event_listener_error",
                    event_type=type(event).__name__,
                    error=str(e),
                )

    def notify(self, title: str, message: str, severity: Severity = "info") -> None:
        self.emit(Notification(title=title, message=message, severity=severity))
