"""Per-session pairing of chat controller and template synchronizer."""

from collections import deque
from datetime import datetime
from typing import Deque, List, Optional
from uuid import UUID, uuid4

import structlog

from ..domain.events import EventEmitter, GeneratedEvent, Notification
from ..domain.models import utcnow
from .chat import ChatSessionController, Generator
from .clipboard import MemoryClipboard
from .templates import TemplateSynchronizer

logger = structlog.get_logger()

# Oldest notifications are dropped once a client stops draining them
MAX_NOTIFICATIONS = 50


class Workspace:
    """One user's chat session and the template draft it feeds."""

    def __init__(
        self,
        generate: Generator,
        require_category: bool = False,
        session_id: Optional[UUID] = None,
        max_notifications: int = MAX_NOTIFICATIONS,
    ) -> None:
        self.id: UUID = session_id or uuid4()
        self.created_at: datetime = utcnow()
        self.events = EventEmitter()
        self.clipboard = MemoryClipboard()
        self.notifications: Deque[Notification] = deque(maxlen=max_notifications)

        self.chat = ChatSessionController(
            generate,
            events=self.events,
            clipboard=self.clipboard,
            session_id=str(self.id),
        )
        self.template = TemplateSynchronizer(
            events=self.events,
            clipboard=self.clipboard,
            require_category=require_category,
        )

        self.events.subscribe(self._on_generated, GeneratedEvent)
        self.events.subscribe(self.notifications.append, Notification)

    def _on_generated(self, event: GeneratedEvent) -> None:
        adopted = self.template.receive_prompt(event.prompt)
        logger.debug("generated_prompt_handed_off", session_id=str(self.id), adopted=adopted)

    def drain_notifications(self) -> List[Notification]:
        pending = list(self.notifications)
        self.notifications.clear()
        return pending
