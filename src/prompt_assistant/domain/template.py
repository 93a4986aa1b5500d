"""Pure template operations: placeholder sync, validity and export."""

import re
from typing import Iterable, List, Optional, Tuple
from uuid import uuid4

from .errors import DuplicateVariableError
from .models import TemplateCategory, TemplateDraft, TemplateVariable

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

NO_DESCRIPTION = "No description provided"
DEFAULT_CATEGORY = "General"
NO_VARIABLES = "No variables detected"

EXPORT_INSTRUCTIONS = """1. Go to Setup > Prompt Builder (or use the "Open Prompt Builder" button)
2. Click "New Prompt Template"
3. Paste the prompt content from above
4. Configure the template name, description, and variables as listed
5. Set the category and save your template"""

Variables = Tuple[TemplateVariable, ...]


def new_variable_id() -> str:
    return f"var_{uuid4().hex[:12]}"


def extract_placeholders(content: str) -> List[str]:
    """Distinct ``{{identifier}}`` names in first-occurrence order."""
    names: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(content or ""):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def sync_variables(variables: Iterable[TemplateVariable], content: str) -> Variables:
    """Merge placeholders found in ``content`` into ``variables``.

    Existing entries are kept as they are, in their order and with their
    descriptions; only names not yet present are appended. Entries whose
    token disappeared from the content stay.
    """
    merged = tuple(variables)
    known = {v.name for v in merged}
    for name in extract_placeholders(content):
        if name not in known:
            merged += (TemplateVariable(id=new_variable_id(), name=name),)
            known.add(name)
    return merged


def add_variable(variables: Variables, name: str, description: str = "") -> Variables:
    if any(v.name == name for v in variables):
        raise DuplicateVariableError(name)
    return variables + (
        TemplateVariable(id=new_variable_id(), name=name, description=description),
    )


def update_variable(
    variables: Variables,
    index: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Variables:
    if not 0 <= index < len(variables):
        raise IndexError(f"no variable at index {index}")
    current = variables[index]
    if name is not None and name != current.name:
        if any(v.name == name for v in variables):
            raise DuplicateVariableError(name)
    update = {}
    if name is not None:
        update["name"] = name
    if description is not None:
        update["description"] = description
    return variables[:index] + (current.model_copy(update=update),) + variables[index + 1:]


def remove_variable(variables: Variables, index: int) -> Variables:
    if not 0 <= index < len(variables):
        raise IndexError(f"no variable at index {index}")
    return variables[:index] + variables[index + 1:]


def missing_fields(draft: TemplateDraft, require_category: bool = False) -> List[str]:
    missing = []
    if not draft.name.strip():
        missing.append("name")
    if not draft.content.strip():
        missing.append("content")
    if require_category and draft.category is None:
        missing.append("category")
    return missing


def is_valid(draft: TemplateDraft, require_category: bool = False) -> bool:
    return not missing_fields(draft, require_category)


def form_progress(draft: TemplateDraft, require_category: bool = False) -> int:
    """Percentage of required fields filled in."""
    total = 3 if require_category else 2
    done = total - len(missing_fields(draft, require_category))
    return round(done / total * 100)


def format_variable(variable: TemplateVariable) -> str:
    if variable.description:
        return f"- {variable.name}: {variable.description}"
    return f"- {variable.name}"


def format_for_export(draft: TemplateDraft) -> str:
    if draft.variables:
        variables = "\n".join(format_variable(v) for v in draft.variables)
    else:
        variables = NO_VARIABLES
    category = draft.category.value if draft.category else DEFAULT_CATEGORY

    return f"""=== PROMPT TEMPLATE ===
Name: {draft.name}
Description: {draft.description or NO_DESCRIPTION}
Category: {category}

=== PROMPT CONTENT ===
{draft.content}

=== VARIABLES ===
{variables}

=== INSTRUCTIONS ===
{EXPORT_INSTRUCTIONS}"""


def summarize(draft: TemplateDraft) -> dict:
    return {
        "name": draft.name or "Untitled Template",
        "description": draft.description or NO_DESCRIPTION,
        "variables": len(draft.variables),
        "category": draft.category.label if draft.category else "Uncategorized",
    }


def coerce_category(value: Optional[str]) -> Optional[TemplateCategory]:
    if value is None or value == "":
        return None
    if isinstance(value, TemplateCategory):
        return value
    return TemplateCategory(value)
