"""
FastAPI Application Module

HTTP surface of the prompt assistant. Each session is a workspace pairing a
chat controller, which talks to the generation service, with a template
draft that picks up the generated prompt.

Key Features:
- Async prompt generation with one outstanding request per session
- Template drafts with automatic {{placeholder}} variable detection
- Structured logging and Prometheus metrics
- CORS and OpenTelemetry support
"""

from contextlib import asynccontextmanager
from typing import List
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from structlog import get_logger

from ..config import Settings, get_settings
from ..domain.errors import DuplicateVariableError, ValidationError
from ..domain.events import GeneratedEvent, Notification
from ..domain.models import TemplateCategory
from ..repositories.memory import InMemoryRepository
from ..services.chat import Generator
from ..services.llm import GenerationService
from ..services.workspace import Workspace
from .schemas import (
    ActionRequest,
    ActionResponse,
    CopyResponse,
    InputUpdate,
    SavedTemplate,
    SessionSummary,
    SessionView,
    SubmitRequest,
    SubmitResponse,
    TemplateUpdate,
    TemplateView,
    VariableCreate,
    VariableUpdate,
)

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests by endpoint", ["path"], registry=CUSTOM_REGISTRY)
GENERATIONS = Counter("generations_total", "Successful prompt generations", registry=CUSTOM_REGISTRY)
GENERATION_FAILURES = Counter("generation_failures_total", "Failed prompt generations", registry=CUSTOM_REGISTRY)
TEMPLATES_SAVED = Counter("templates_saved_total", "Templates handed off for saving", registry=CUSTOM_REGISTRY)

logger = get_logger()

# Core service instances
settings = get_settings()
repository = InMemoryRepository()
generation_service = GenerationService(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Logs app startup/shutdown"""
    logger.info("application_startup_complete", model=settings.model)
    yield
    logger.info("application_shutdown_complete")


def get_repository() -> InMemoryRepository:
    """Returns the session and template storage instance"""
    return repository


def get_generation_service() -> Generator:
    """Returns the prompt generation collaborator"""
    return generation_service


def get_app_settings() -> Settings:
    """Returns the runtime settings"""
    return settings


async def get_workspace(
    session_id: UUID,
    repository: InMemoryRepository = Depends(get_repository)
) -> Workspace:
    """Resolves the session in the path or fails with 404"""
    workspace = await repository.get_session(session_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return workspace


app = FastAPI(
    title="Prompt Assistant API",
    description="Conversational prompt authoring with reusable templates",
    version="0.1.0",
    lifespan=lifespan
)

# Enable cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Tracks requests"""
    logger.info("request_started", method=request.method, path=request.url.path)
    REQUESTS.labels(path=request.url.path).inc()
    try:
        return await call_next(request)
    except Exception as e:
        logger.error("request_failed", path=request.url.path, error=str(e))
        raise


@app.post("/sessions", response_model=SessionView)
async def create_session(
    repository: InMemoryRepository = Depends(get_repository),
    generate: Generator = Depends(get_generation_service),
    settings: Settings = Depends(get_app_settings)
) -> SessionView:
    """Starts a new chat session with its welcome message"""
    workspace = Workspace(generate, require_category=settings.require_category)
    workspace.events.subscribe(lambda _: GENERATIONS.inc(), GeneratedEvent)
    await repository.add_session(workspace)
    workspace.chat.activate()
    return SessionView.from_workspace(workspace)


@app.get("/sessions", response_model=List[SessionSummary])
async def list_sessions(
    limit: int = 100,
    offset: int = 0,
    repository: InMemoryRepository = Depends(get_repository)
) -> List[SessionSummary]:
    """Gets paginated session list, newest first"""
    sessions = await repository.list_sessions(limit=limit, offset=offset)
    return [
        SessionSummary(
            id=w.id,
            created_at=w.created_at,
            state=w.chat.state,
            message_count=len(w.chat.messages),
        )
        for w in sessions
    ]


@app.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(workspace: Workspace = Depends(get_workspace)) -> SessionView:
    """Retrieves the message log and turn state of a session"""
    return SessionView.from_workspace(workspace)


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: UUID,
    repository: InMemoryRepository = Depends(get_repository)
) -> Response:
    """Drops a session and its draft"""
    if not await repository.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@app.put("/sessions/{session_id}/input", response_model=SessionView)
async def set_input(
    body: InputUpdate,
    workspace: Workspace = Depends(get_workspace)
) -> SessionView:
    """Replaces the pending input buffer"""
    workspace.chat.set_input(body.content)
    return SessionView.from_workspace(workspace)


@app.post("/sessions/{session_id}/messages", response_model=SubmitResponse)
async def submit_message(
    body: SubmitRequest,
    workspace: Workspace = Depends(get_workspace)
) -> SubmitResponse:
    """
    Submits a request for prompt generation.
    Blank input or a generation already in flight is not accepted.
    """
    chat = workspace.chat
    try:
        accepted = await chat.submit(body.content)
    except Exception as e:
        logger.error("submit_error", session_id=str(workspace.id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to process message")

    if accepted and chat.messages and chat.messages[-1].role == "error":
        GENERATION_FAILURES.inc()
    return SubmitResponse(accepted=accepted, session=SessionView.from_workspace(workspace))


@app.post("/sessions/{session_id}/clear", response_model=SessionView)
async def clear_session(workspace: Workspace = Depends(get_workspace)) -> SessionView:
    """Clears the log back to the welcome message"""
    workspace.chat.clear()
    return SessionView.from_workspace(workspace)


@app.post("/sessions/{session_id}/messages/{message_id}/actions", response_model=ActionResponse)
async def message_action(
    message_id: str,
    body: ActionRequest,
    workspace: Workspace = Depends(get_workspace)
) -> ActionResponse:
    """Copies, edits or regenerates from a message in the log"""
    chat = workspace.chat
    if chat.snapshot.find(message_id) is None:
        raise HTTPException(status_code=404, detail="Message not found")

    performed = await chat.request_action(body.action, message_id)
    return ActionResponse(
        action=body.action,
        performed=performed,
        clipboard=workspace.clipboard.contents if body.action == "copy" and performed else None,
        session=SessionView.from_workspace(workspace),
    )


@app.get("/sessions/{session_id}/notifications", response_model=List[Notification])
async def get_notifications(workspace: Workspace = Depends(get_workspace)) -> List[Notification]:
    """Returns and forgets the notifications raised since the last call"""
    return workspace.drain_notifications()


@app.get("/sessions/{session_id}/template", response_model=TemplateView)
async def get_template_draft(workspace: Workspace = Depends(get_workspace)) -> TemplateView:
    """Retrieves the template draft with its validity"""
    return TemplateView.from_workspace(workspace)


@app.patch("/sessions/{session_id}/template", response_model=TemplateView)
async def update_template_draft(
    body: TemplateUpdate,
    workspace: Workspace = Depends(get_workspace)
) -> TemplateView:
    """Edits draft fields; content edits pick up new placeholders"""
    workspace.template.update(**body.model_dump(exclude_unset=True, exclude_none=True))
    return TemplateView.from_workspace(workspace)


@app.post("/sessions/{session_id}/template/variables", response_model=TemplateView)
async def add_variable(
    body: VariableCreate,
    workspace: Workspace = Depends(get_workspace)
) -> TemplateView:
    """Adds a variable by hand"""
    try:
        workspace.template.add_variable(body.name, body.description)
    except DuplicateVariableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TemplateView.from_workspace(workspace)


@app.patch("/sessions/{session_id}/template/variables/{index}", response_model=TemplateView)
async def update_variable(
    index: int,
    body: VariableUpdate,
    workspace: Workspace = Depends(get_workspace)
) -> TemplateView:
    """Renames or describes a variable"""
    try:
        workspace.template.update_variable(index, body.name, body.description)
    except IndexError:
        raise HTTPException(status_code=404, detail="Variable not found")
    except DuplicateVariableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TemplateView.from_workspace(workspace)


@app.delete("/sessions/{session_id}/template/variables/{index}", response_model=TemplateView)
async def remove_variable(
    index: int,
    workspace: Workspace = Depends(get_workspace)
) -> TemplateView:
    """Removes a variable from the list"""
    try:
        workspace.template.remove_variable(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Variable not found")
    return TemplateView.from_workspace(workspace)


@app.get("/sessions/{session_id}/template/export")
async def export_template(workspace: Workspace = Depends(get_workspace)) -> Response:
    """Serializes the draft into the portable text block"""
    return Response(workspace.template.format_for_export(), media_type="text/plain")


@app.get("/sessions/{session_id}/template/preview")
async def preview_template(workspace: Workspace = Depends(get_workspace)) -> Response:
    """Same block as export, refused until name and content are set"""
    try:
        text = workspace.template.preview()
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return Response(text, media_type="text/plain")


@app.post("/sessions/{session_id}/template/copy", response_model=CopyResponse)
async def copy_template(workspace: Workspace = Depends(get_workspace)) -> CopyResponse:
    """Copies the export block; failures are reported as notifications"""
    text = await workspace.template.copy_template()
    return CopyResponse(copied=text is not None, content=text)


@app.post("/sessions/{session_id}/template/reset", response_model=TemplateView)
async def reset_template(workspace: Workspace = Depends(get_workspace)) -> TemplateView:
    """Resets the draft to its defaults"""
    workspace.template.reset()
    return TemplateView.from_workspace(workspace)


@app.post("/sessions/{session_id}/template/save", response_model=SavedTemplate, status_code=201)
async def save_template(workspace: Workspace = Depends(get_workspace)) -> SavedTemplate:
    """Hands the draft off for saving and starts a fresh one"""
    try:
        result = workspace.template.save()
    except ValidationError as e:
        logger.warning("save_template_rejected", session_id=str(workspace.id), missing=e.missing_fields)
        raise HTTPException(status_code=422, detail=str(e))
    TEMPLATES_SAVED.inc()
    return SavedTemplate.from_result(result)


@app.get("/templates", response_model=List[SavedTemplate])
async def list_templates(
    limit: int = 100,
    offset: int = 0,
    repository: InMemoryRepository = Depends(get_repository)
) -> List[SavedTemplate]:
    """Lists saved templates, newest first"""
    return [SavedTemplate.from_result(r) for r in await repository.list_templates(limit, offset)]


@app.get("/templates/{template_id}", response_model=SavedTemplate)
async def get_saved_template(
    template_id: str,
    repository: InMemoryRepository = Depends(get_repository)
) -> SavedTemplate:
    """Retrieves one saved template"""
    result = await repository.get_template(template_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return SavedTemplate.from_result(result)


@app.get("/template-categories")
async def template_categories() -> List[dict]:
    """Category options for the template form"""
    return TemplateCategory.options()


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")
