"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..domain.events import TemplateSavedEvent
from ..domain.models import SaveResult
from ..services.workspace import Workspace


class Repository(ABC):
    """Abstract base class for repositories."""

    @abstractmethod
    async def add_session(self, workspace: Workspace) -> Workspace:
        """Register a new session workspace."""
        pass

    @abstractmethod
    async def get_session(self, session_id: UUID) -> Optional[Workspace]:
        """Retrieve a session workspace by ID."""
        pass

    @abstractmethod
    async def list_sessions(self, limit: int = 100, offset: int = 0) -> List[Workspace]:
        """List session workspaces with pagination."""
        pass

    @abstractmethod
    async def delete_session(self, session_id: UUID) -> bool:
        """Drop a session workspace."""
        pass

    @abstractmethod
    def store_template(self, event: TemplateSavedEvent) -> SaveResult:
        """Accept a saved template hand-off. Must not block."""
        pass

    @abstractmethod
    async def get_template(self, template_id: str) -> Optional[SaveResult]:
        """Retrieve a saved template."""
        pass

    @abstractmethod
    async def list_templates(self, limit: int = 100, offset: int = 0) -> List[SaveResult]:
        """List saved templates, newest first."""
        pass
