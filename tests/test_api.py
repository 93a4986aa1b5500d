"""Test suite for the API endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import RemoteError, ScriptedGenerator
from prompt_assistant.api.app import app, get_generation_service
from prompt_assistant.domain.models import GenerationResult


@pytest.fixture
def generator():
    """Install a scripted generator in place of the Gemini service."""
    scripted = ScriptedGenerator()
    app.dependency_overrides[get_generation_service] = lambda: scripted
    yield scripted
    app.dependency_overrides.pop(get_generation_service, None)


def client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_create_session(generator):
    """Test creating a new session."""
    async with client() as c:
        response = await c.post("/sessions")
        assert response.status_code == 200
        data = response.json()
        assert "id" in data
        assert data["state"] == "idle"
        assert len(data["messages"]) == 1
        assert data["messages"][0]["role"] == "assistant"
        assert data["messages"][0]["label"] == "Assistant"


@pytest.mark.asyncio
async def test_error_handling(generator):
    """Test error handling in various scenarios."""
    async with client() as c:
        response = await c.get("/sessions/invalid-uuid")
        assert response.status_code == 422

        response = await c.get("/sessions/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

        session_id = (await c.post("/sessions")).json()["id"]
        response = await c.post(
            f"/sessions/{session_id}/messages/msg_99_0/actions",
            json={"action": "copy"}
        )
        assert response.status_code == 404

        response = await c.post(
            f"/sessions/{session_id}/messages/msg_1_0/actions",
            json={"action": "delete"}
        )
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_submit_flow_feeds_template(generator):
    """Test that a generated prompt lands in the template draft."""
    generator.replies.append(
        GenerationResult(
            generated_prompt="Hello {{name}}, your {{order_id}} is ready. {{name}} again",
            confidence=0.7,
            suggestions=["Add a sign-off"],
        )
    )
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]

        response = await c.post(
            f"/sessions/{session_id}/messages",
            json={"content": "Order ready notification"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] is True
        roles = [m["role"] for m in data["session"]["messages"]]
        assert roles == ["assistant", "user", "assistant"]
        assert data["session"]["messages"][-1]["metadata"]["confidence"] == 0.7

        draft = (await c.get(f"/sessions/{session_id}/template")).json()
        assert draft["content"].startswith("Hello {{name}}")
        assert [v["name"] for v in draft["variables"]] == ["name", "order_id"]
        assert draft["is_valid"] is False
        assert draft["missing_fields"] == ["name"]


@pytest.mark.asyncio
async def test_blank_submit_not_accepted(generator):
    """Test that blank input is ignored."""
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        response = await c.post(f"/sessions/{session_id}/messages", json={"content": "   "})
        assert response.status_code == 200
        assert response.json()["accepted"] is False
        assert len(response.json()["session"]["messages"]) == 1
        assert generator.requests == []


@pytest.mark.asyncio
async def test_failed_generation_shows_error(generator):
    """Test that collaborator failures become error messages."""
    generator.replies.append(RemoteError({"message": "rate limited"}))
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        await c.put(f"/sessions/{session_id}/input", json={"content": "Try me"})

        response = await c.post(f"/sessions/{session_id}/messages", json={})
        session = response.json()["session"]
        error = session["messages"][-1]
        assert error["role"] == "error"
        assert error["label"] == "Error"
        assert error["content"] == "rate limited"
        assert error["metadata"] is None
        assert generator.requests[0].user_query == "Try me"
        assert session["state"] == "idle"
        assert session["user_input"] == ""


@pytest.mark.asyncio
async def test_clear_and_actions(generator):
    """Test clearing and message actions."""
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        data = (await c.post(
            f"/sessions/{session_id}/messages", json={"content": "Build a sales template"}
        )).json()
        user_id = data["session"]["messages"][1]["id"]
        assistant = data["session"]["messages"][2]

        response = await c.post(
            f"/sessions/{session_id}/messages/{assistant['id']}/actions",
            json={"action": "copy"}
        )
        assert response.json()["performed"] is True
        assert response.json()["clipboard"] == assistant["content"]

        notifications = (await c.get(f"/sessions/{session_id}/notifications")).json()
        assert notifications[-1]["severity"] == "success"
        assert (await c.get(f"/sessions/{session_id}/notifications")).json() == []

        response = await c.post(
            f"/sessions/{session_id}/messages/{user_id}/actions",
            json={"action": "edit"}
        )
        assert response.json()["session"]["user_input"] == "Build a sales template"

        response = await c.post(
            f"/sessions/{session_id}/messages/{user_id}/actions",
            json={"action": "regenerate"}
        )
        assert len(response.json()["session"]["messages"]) == 5

        response = await c.post(f"/sessions/{session_id}/clear")
        messages = response.json()["messages"]
        assert len(messages) == 1
        assert messages[0]["id"].startswith("msg_1_")


@pytest.mark.asyncio
async def test_template_editing(generator):
    """Test draft edits and variable management."""
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        base = f"/sessions/{session_id}/template"

        draft = (await c.patch(base, json={
            "name": "Lead intro",
            "category": "lead-qualification",
            "content": "Introduce {{rep}} to {{lead}}",
        })).json()
        assert draft["is_valid"] is True
        assert draft["form_progress"] == 100
        assert [v["name"] for v in draft["variables"]] == ["rep", "lead"]

        draft = (await c.patch(f"{base}/variables/0", json={"description": "Sales rep"})).json()
        assert draft["variables"][0]["description"] == "Sales rep"

        draft = (await c.post(f"{base}/variables", json={"name": "region"})).json()
        assert [v["name"] for v in draft["variables"]] == ["rep", "lead", "region"]

        response = await c.post(f"{base}/variables", json={"name": "region"})
        assert response.status_code == 409
        response = await c.post(f"{base}/variables", json={"name": "bad name"})
        assert response.status_code == 422

        draft = (await c.delete(f"{base}/variables/1")).json()
        assert [v["name"] for v in draft["variables"]] == ["rep", "region"]
        response = await c.delete(f"{base}/variables/7")
        assert response.status_code == 404

        response = await c.get(f"{base}/export")
        assert response.status_code == 200
        assert "Category: lead-qualification" in response.text
        assert "- rep: Sales rep\n- region" in response.text


@pytest.mark.asyncio
async def test_save_template(generator):
    """Test saving a template and listing it."""
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        base = f"/sessions/{session_id}/template"

        await c.patch(base, json={"content": "Summarize {{account}}"})
        response = await c.post(f"{base}/save")
        assert response.status_code == 422
        assert "name" in response.json()["detail"]
        assert (await c.get(base)).json()["content"] == "Summarize {{account}}"

        await c.patch(base, json={"name": "Account summary"})
        response = await c.post(f"{base}/save")
        assert response.status_code == 201
        saved = response.json()
        assert saved["name"] == "Account summary"
        assert [v["name"] for v in saved["variables"]] == ["account"]

        draft = (await c.get(base)).json()
        assert draft["name"] == ""
        assert draft["content"] == ""

        response = await c.get(f"/templates/{saved['template_id']}")
        assert response.status_code == 200
        assert response.json()["content"] == "Summarize {{account}}"

        templates = (await c.get("/templates")).json()
        assert saved["template_id"] in [t["template_id"] for t in templates]

        response = await c.get("/templates/tpl_missing")
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_copy_preview_reset(generator):
    """Test copy, preview and reset of the draft."""
    async with client() as c:
        session_id = (await c.post("/sessions")).json()["id"]
        base = f"/sessions/{session_id}/template"

        assert (await c.get(f"{base}/preview")).status_code == 422
        assert (await c.post(f"{base}/copy")).json() == {"copied": False, "content": None}

        await c.patch(base, json={"name": "Copy me", "content": "Body"})
        assert (await c.get(f"{base}/preview")).status_code == 200
        copied = (await c.post(f"{base}/copy")).json()
        assert copied["copied"] is True
        assert copied["content"].startswith("=== PROMPT TEMPLATE ===")

        draft = (await c.post(f"{base}/reset")).json()
        assert draft["name"] == ""
        notifications = (await c.get(f"/sessions/{session_id}/notifications")).json()
        assert notifications[-1]["message"] == "Form reset to default values"


@pytest.mark.asyncio
async def test_session_listing_and_delete(generator):
    """Test listing and deleting sessions."""
    async with client() as c:
        ids = [(await c.post("/sessions")).json()["id"] for _ in range(3)]

        sessions = (await c.get("/sessions?limit=1000")).json()
        listed = [s["id"] for s in sessions]
        assert all(i in listed for i in ids)

        response = await c.get("/sessions?limit=2&offset=0")
        assert len(response.json()) == 2

        assert (await c.delete(f"/sessions/{ids[0]}")).status_code == 204
        assert (await c.get(f"/sessions/{ids[0]}")).status_code == 404
        assert (await c.delete(f"/sessions/{ids[0]}")).status_code == 404


@pytest.mark.asyncio
async def test_categories_and_metrics(generator):
    """Test the category options and metrics endpoints."""
    async with client() as c:
        categories = (await c.get("/template-categories")).json()
        assert {"label": "General", "value": "general"} in categories

        response = await c.get("/metrics")
        assert response.status_code == 200
        assert "generations_total" in response.text
