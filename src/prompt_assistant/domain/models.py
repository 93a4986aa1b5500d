"""Domain models for the prompt assistant."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageMetadata(BaseModel):
    """Extra payload returned alongside a generated prompt."""

    model_config = ConfigDict(frozen=True)

    confidence: Optional[float] = None
    suggestions: Tuple[str, ...] = ()


class _BaseMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    created_at: datetime = Field(default_factory=utcnow)


class UserMessage(_BaseMessage):
    """Text submitted by the user."""

    role: Literal["user"] = "user"


class AssistantMessage(_BaseMessage):
    """Generated prompt or welcome text."""

    role: Literal["assistant"] = "assistant"
    metadata: Optional[MessageMetadata] = None


class ErrorMessage(_BaseMessage):
    """Diagnostic for a failed generation."""

    role: Literal["error"] = "error"


Message = Annotated[
    Union[UserMessage, AssistantMessage, ErrorMessage],
    Field(discriminator="role"),
]

Role = Literal["user", "assistant", "error"]
ActionKind = Literal["copy", "edit", "regenerate"]
Severity = Literal["info", "success", "error"]


class GenerationRequest(BaseModel):
    """Arguments handed to the generation collaborator."""

    model_config = ConfigDict(frozen=True)

    user_query: str
    context_data: str = "{}"


class GenerationResult(BaseModel):
    """Structured reply of the generation collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    generated_prompt: Optional[str] = Field(default=None, alias="generatedPrompt")
    confidence: Optional[float] = None
    suggestions: Optional[List[str]] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _drop_unreadable_confidence(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("suggestions", mode="before")
    @classmethod
    def _coerce_suggestions(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, (list, tuple)):
            return []
        return [str(s) for s in value if s is not None]


class TemplateCategory(str, Enum):
    SALES = "sales"
    CUSTOMER_SERVICE = "customer-service"
    MARKETING = "marketing"
    DATA_ANALYSIS = "data-analysis"
    LEAD_QUALIFICATION = "lead-qualification"
    FOLLOW_UP = "follow-up"
    ONBOARDING = "onboarding"
    TRAINING = "training"
    GENERAL = "general"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @classmethod
    def options(cls) -> List[dict]:
        """Label/value pairs for a category picker."""
        return [{"label": c.label, "value": c.value} for c in cls]


_CATEGORY_LABELS = {
    TemplateCategory.SALES: "Sales",
    TemplateCategory.CUSTOMER_SERVICE: "Customer Service",
    TemplateCategory.MARKETING: "Marketing",
    TemplateCategory.DATA_ANALYSIS: "Data Analysis",
    TemplateCategory.LEAD_QUALIFICATION: "Lead Qualification",
    TemplateCategory.FOLLOW_UP: "Follow-up",
    TemplateCategory.ONBOARDING: "Onboarding",
    TemplateCategory.TRAINING: "Training",
    TemplateCategory.GENERAL: "General",
}


class TemplateVariable(BaseModel):
    """A `{{name}}` slot with its user-authored description."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""


class TemplateDraft(BaseModel):
    """The in-progress template being authored."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    category: Optional[TemplateCategory] = None
    content: str = ""
    variables: Tuple[TemplateVariable, ...] = ()


class SaveResult(BaseModel):
    """Outcome of a successful save hand-off."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    template: TemplateDraft
    saved_at: datetime = Field(default_factory=utcnow)
