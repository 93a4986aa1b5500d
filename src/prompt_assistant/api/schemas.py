"""Request and response bodies of the HTTP API."""

from datetime import datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from ..domain.models import (
    ActionKind,
    Message,
    MessageMetadata,
    Role,
    SaveResult,
    TemplateCategory,
    TemplateVariable,
)
from ..domain.session import SessionState
from ..services.workspace import Workspace

ROLE_LABELS = {"user": "You", "assistant": "Assistant", "error": "Error"}


class MessageView(BaseModel):
    """A log entry plus its display label"""
    id: str
    role: Role
    label: str
    content: str
    created_at: datetime
    metadata: Optional[MessageMetadata] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageView":
        return cls(
            id=message.id,
            role=message.role,
            label=ROLE_LABELS.get(message.role, "System"),
            content=message.content,
            created_at=message.created_at,
            metadata=getattr(message, "metadata", None),
        )


class SessionView(BaseModel):
    id: UUID
    created_at: datetime
    state: SessionState
    user_input: str
    messages: List[MessageView]

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> "SessionView":
        chat = workspace.chat
        return cls(
            id=workspace.id,
            created_at=workspace.created_at,
            state=chat.state,
            user_input=chat.user_input,
            messages=[MessageView.from_message(m) for m in chat.messages],
        )


class SessionSummary(BaseModel):
    id: UUID
    created_at: datetime
    state: SessionState
    message_count: int


class SubmitRequest(BaseModel):
    """Defines the structure for prompt generation requests"""
    content: Optional[str] = None


class SubmitResponse(BaseModel):
    accepted: bool
    session: SessionView


class InputUpdate(BaseModel):
    content: str


class ActionRequest(BaseModel):
    action: ActionKind


class ActionResponse(BaseModel):
    action: ActionKind
    performed: bool
    clipboard: Optional[str] = None
    session: SessionView


class TemplateUpdate(BaseModel):
    """Partial edit of the draft; omitted fields stay as they are"""
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[Union[TemplateCategory, Literal[""]]] = None
    content: Optional[str] = None


class VariableCreate(BaseModel):
    name: str = Field(pattern=r"^\w+$")
    description: str = ""


class VariableUpdate(BaseModel):
    name: Optional[str] = Field(default=None, pattern=r"^\w+$")
    description: Optional[str] = None


class TemplateView(BaseModel):
    name: str
    description: str
    category: Optional[TemplateCategory]
    content: str
    variables: List[TemplateVariable]
    is_valid: bool
    missing_fields: List[str]
    form_progress: int
    summary: dict

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> "TemplateView":
        sync = workspace.template
        draft = sync.draft
        return cls(
            name=draft.name,
            description=draft.description,
            category=draft.category,
            content=draft.content,
            variables=list(draft.variables),
            is_valid=sync.is_form_valid,
            missing_fields=sync.missing_fields,
            form_progress=sync.form_progress,
            summary=sync.summary(),
        )


class CopyResponse(BaseModel):
    copied: bool
    content: Optional[str] = None


class SavedTemplate(BaseModel):
    template_id: str
    saved_at: datetime
    name: str
    description: str
    category: Optional[TemplateCategory]
    content: str
    variables: List[TemplateVariable]

    @classmethod
    def from_result(cls, result: SaveResult) -> "SavedTemplate":
        template = result.template
        return cls(
            template_id=result.template_id,
            saved_at=result.saved_at,
            name=template.name,
            description=template.description,
            category=template.category,
            content=template.content,
            variables=list(template.variables),
        )
