"""Template synchronizer: the editable draft behind the template form."""

from typing import List, Optional
from uuid import uuid4

import structlog

from ..domain import template as ops
from ..domain.errors import ClipboardError, ValidationError
from ..domain.events import EventEmitter, TemplateCopiedEvent, TemplateSavedEvent
from ..domain.models import SaveResult, TemplateCategory, TemplateDraft
from .clipboard import Clipboard, MemoryClipboard

logger = structlog.get_logger()

_UNSET = object()


class TemplateSynchronizer:
    """Keeps a draft's variable list in step with the placeholders in its content."""

    def __init__(
        self,
        events: Optional[EventEmitter] = None,
        clipboard: Optional[Clipboard] = None,
        prompt_text: str = "",
        require_category: bool = False,
    ) -> None:
        self.events = events or EventEmitter()
        self.clipboard = clipboard or MemoryClipboard()
        self.require_category = require_category
        self.prompt_text = prompt_text
        self.is_form_valid = False
        self.draft = TemplateDraft()
        self._initialize()

    def _initialize(self) -> None:
        self._set_draft(
            TemplateDraft(
                content=self.prompt_text,
                variables=ops.sync_variables((), self.prompt_text),
            )
        )

    def _set_draft(self, draft: TemplateDraft) -> None:
        self.draft = draft
        self.is_form_valid = ops.is_valid(draft, self.require_category)

    @property
    def missing_fields(self) -> List[str]:
        return ops.missing_fields(self.draft, self.require_category)

    @property
    def form_progress(self) -> int:
        return ops.form_progress(self.draft, self.require_category)

    def summary(self) -> dict:
        return ops.summarize(self.draft)

    def set_name(self, name: str) -> None:
        self._set_draft(self.draft.model_copy(update={"name": name}))

    def set_description(self, description: str) -> None:
        self._set_draft(self.draft.model_copy(update={"description": description}))

    def set_category(self, category) -> None:
        self._set_draft(
            self.draft.model_copy(update={"category": ops.coerce_category(category)})
        )

    def set_content(self, content: str) -> None:
        variables = ops.sync_variables(self.draft.variables, content)
        added = len(variables) - len(self.draft.variables)
        self._set_draft(
            self.draft.model_copy(update={"content": content, "variables": variables})
        )
        if added:
            logger.debug("template_variables_detected", added=added, total=len(variables))

    def update(self, name=_UNSET, description=_UNSET, category=_UNSET, content=_UNSET) -> None:
        """Apply several field edits; only the arguments given are touched."""
        if name is not _UNSET:
            self.set_name(name)
        if description is not _UNSET:
            self.set_description(description)
        if category is not _UNSET:
            self.set_category(category)
        if content is not _UNSET:
            self.set_content(content)

    def receive_prompt(self, prompt: str) -> bool:
        """Take a generated prompt as the draft content if the content is still blank."""
        self.prompt_text = prompt
        if self.draft.content.strip():
            return False
        self.set_content(prompt)
        return True

    def add_variable(self, name: str, description: str = "") -> None:
        self._set_draft(
            self.draft.model_copy(
                update={"variables": ops.add_variable(self.draft.variables, name, description)}
            )
        )

    def update_variable(
        self, index: int, name: Optional[str] = None, description: Optional[str] = None
    ) -> None:
        variables = ops.update_variable(self.draft.variables, index, name, description)
        self._set_draft(self.draft.model_copy(update={"variables": variables}))

    def remove_variable(self, index: int) -> None:
        variables = ops.remove_variable(self.draft.variables, index)
        self._set_draft(self.draft.model_copy(update={"variables": variables}))

    def format_for_export(self) -> str:
        return ops.format_for_export(self.draft)

    def preview(self) -> str:
        if not self.draft.name or not self.draft.content:
            self.events.notify(
                "Error", "Please fill in template name and content for preview", "error"
            )
            missing = [f for f in ("name", "content") if not getattr(self.draft, f)]
            raise ValidationError(missing)
        return self.format_for_export()

    def reset(self) -> None:
        self._initialize()
        self.events.notify("Info", "Form reset to default values", "info")

    def _require_valid(self, action: str) -> None:
        missing = self.missing_fields
        if missing:
            logger.warning("template_invalid", action=action, missing_fields=missing)
            self.events.notify("Error", "Please fill in all required fields", "error")
            raise ValidationError(missing)

    async def copy_template(self) -> Optional[str]:
        """Copy the export block to the clipboard; ``None`` if the draft is invalid or the copy failed."""
        try:
            self._require_valid("copy")
        except ValidationError:
            return None

        text = self.format_for_export()
        try:
            await self.clipboard.write_text(text)
        except ClipboardError as e:
            logger.error("template_copy_failed", error=str(e))
            self.events.notify("Error", "Failed to copy template to clipboard", "error")
            return None

        self.events.notify("Success", "Template content copied to clipboard!", "success")
        self.events.emit(
            TemplateCopiedEvent(template_name=self.draft.name, template_content=text)
        )
        return text

    def save(self) -> SaveResult:
        """Hand a snapshot of a valid draft to the persistence listeners and start over."""
        self._require_valid("save")

        snapshot = self.draft.model_copy(deep=True)
        result = SaveResult(template_id=f"tpl_{uuid4().hex}", template=snapshot)
        self.events.emit(
            TemplateSavedEvent(template_id=result.template_id, template_data=snapshot)
        )
        logger.info(
            "template_saved",
            template_id=result.template_id,
            variables=len(snapshot.variables),
        )
        self.events.notify("Success", f"Template '{snapshot.name}' saved", "success")

        self.prompt_text = ""
        self._initialize()
        return result

    @staticmethod
    def category_options() -> List[dict]:
        return TemplateCategory.options()
