"""Clipboard collaborator."""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from ..domain.errors import ClipboardError

logger = structlog.get_logger()


class Clipboard(ABC):
    """Abstract clipboard; implementations raise ``ClipboardError`` on failure."""

    @abstractmethod
    async def write_text(self, text: str) -> None:
        """Place ``text`` on the clipboard."""
        pass


class MemoryClipboard(Clipboard):
    """Keeps copied text so an HTTP client can pick it up."""

    def __init__(self, max_length: Optional[int] = None) -> None:
        self.max_length = max_length
        self.contents: Optional[str] = None

    async def write_text(self, text: str) -> None:
        if text is None:
            raise ClipboardError("Nothing to copy")
        if self.max_length is not None and len(text) > self.max_length:
            raise ClipboardError(
                f"Text of {len(text)} characters exceeds clipboard limit of {self.max_length}"
            )
        self.contents = text
        logger.debug("clipboard_written", length=len(text))
