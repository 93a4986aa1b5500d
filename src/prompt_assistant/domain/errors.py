"""Error taxonomy of the prompt assistant engine."""

from typing import Any, Dict, Iterable, Optional


class PromptAssistantError(Exception):
    """Base class for engine errors."""


class EmptyInputError(PromptAssistantError):
    """Submission of a blank query. Never surfaced to the user."""


class GenerationFailure(PromptAssistantError):
    """The generation collaborator rejected or returned no artifact."""


class GenerationError(PromptAssistantError):
    """Raised by a generation collaborator.

    ``body`` mirrors the payload of a remote error; when it holds a
    ``message`` key that text is what the user gets to see.
    """

    def __init__(self, message: str, body: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.body = body if body is not None else {"message": message}


class ValidationError(PromptAssistantError):
    """Save or copy attempted on an incomplete draft."""

    def __init__(self, missing_fields: Iterable[str], message: Optional[str] = None):
        self.missing_fields = list(missing_fields)
        super().__init__(
            message or "Missing required field(s): " + ", ".join(self.missing_fields)
        )


class DuplicateVariableError(ValidationError):
    """Variable names must stay unique within a draft; the offending field is ``name``."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(["name"], f"Variable '{name}' already exists")


class ClipboardError(PromptAssistantError):
    """Writing to the clipboard failed."""
