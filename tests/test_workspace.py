"""Test suite for the per-session workspace."""

import pytest

from conftest import ScriptedGenerator
from prompt_assistant.services.workspace import MAX_NOTIFICATIONS, Workspace


def test_notifications_are_capped():
    """Test that undrained notifications keep only the most recent entries."""
    workspace = Workspace(ScriptedGenerator(), max_notifications=3)
    for i in range(5):
        workspace.events.notify("Copied!", f"copy {i}", "success")

    drained = workspace.drain_notifications()
    assert [n.message for n in drained] == ["copy 2", "copy 3", "copy 4"]
    assert workspace.drain_notifications() == []


def test_default_notification_cap():
    """Test the default bound on pending notifications."""
    workspace = Workspace(ScriptedGenerator())
    for i in range(MAX_NOTIFICATIONS + 10):
        workspace.events.notify("Error", f"failure {i}", "error")

    drained = workspace.drain_notifications()
    assert len(drained) == MAX_NOTIFICATIONS
    assert drained[-1].message == f"failure {MAX_NOTIFICATIONS + 9}"


@pytest.mark.asyncio
async def test_generated_prompt_reaches_template():
    """Test that a generated prompt seeds the blank template draft."""
    workspace = Workspace(ScriptedGenerator({"generatedPrompt": "Follow up with {{lead}}"}))
    await workspace.chat.submit("follow up")

    assert workspace.template.draft.content == "Follow up with {{lead}}"
    assert [v.name for v in workspace.template.draft.variables] == ["lead"]
