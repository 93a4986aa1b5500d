"""In-memory repository implementation."""

import asyncio
from typing import Dict, List, Optional
from uuid import UUID

import structlog

from ..domain.events import TemplateSavedEvent
from ..domain.models import SaveResult
from ..services.workspace import Workspace
from .base import Repository

logger = structlog.get_logger()


class InMemoryRepository(Repository):
    """In-memory session registry and template store."""

    def __init__(self) -> None:
        self._sessions: Dict[UUID, Workspace] = {}
        self._templates: Dict[str, SaveResult] = {}
        self._async_lock = asyncio.Lock()
        logger.info("repository_initialized")

    async def add_session(self, workspace: Workspace) -> Workspace:
        async with self._async_lock:
            self._sessions[workspace.id] = workspace
            workspace.events.subscribe(self.store_template, TemplateSavedEvent)
            logger.info("session_created", session_id=str(workspace.id))
        return workspace

    async def get_session(self, session_id: UUID) -> Optional[Workspace]:
        async with self._async_lock:
            workspace = self._sessions.get(session_id)
            if workspace is None:
                logger.warning("session_not_found", session_id=str(session_id))
            return workspace

    async def list_sessions(self, limit: int = 100, offset: int = 0) -> List[Workspace]:
        async with self._async_lock:
            sessions = sorted(
                self._sessions.values(),
                key=lambda w: w.created_at,
                reverse=True
            )
            return sessions[offset : offset + limit]

    async def delete_session(self, session_id: UUID) -> bool:
        async with self._async_lock:
            removed = self._sessions.pop(session_id, None) is not None
            if removed:
                logger.info("session_deleted", session_id=str(session_id))
            return removed

    def store_template(self, event: TemplateSavedEvent) -> SaveResult:
        # Plain dict write; runs inside the emitting handler without yielding.
        record = SaveResult(template_id=event.template_id, template=event.template_data)
        self._templates[record.template_id] = record
        logger.info(
            "template_stored",
            template_id=record.template_id,
            name=record.template.name
        )
        return record

    async def get_template(self, template_id: str) -> Optional[SaveResult]:
        async with self._async_lock:
            return self._templates.get(template_id)

    async def list_templates(self, limit: int = 100, offset: int = 0) -> List[SaveResult]:
        async with self._async_lock:
            templates = sorted(
                self._templates.values(),
                key=lambda t: t.saved_at,
                reverse=True
            )
            return templates[offset : offset + limit]
