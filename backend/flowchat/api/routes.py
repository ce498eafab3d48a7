import uuid

import requests
from fastapi import APIRouter, Depends, HTTPException

from flowchat.api.dependencies import (
    get_collaborator,
    get_generator,
    get_renderer,
    get_session_store,
    get_validator,
)
from flowchat.conversation.assistant import ConversationCollaborator
from flowchat.conversation.controller import request_reply
from flowchat.conversation.errors import (
    CollaboratorError,
    SessionNotFoundError,
    TurnRejectedError,
)
from flowchat.conversation.generator import FlowchartGenerator
from flowchat.conversation.models import GENERIC_FAILURE_MESSAGE, REPHRASE_MESSAGE
from flowchat.conversation.sessions import ConversationSession, SessionStore
from flowchat.dsl.mermaid import normalize_mermaid
from flowchat.logger import get_logger
from flowchat.renderer.mermaid_ink import MermaidInkRenderer
from flowchat.schemas import (
    ConverseRequest,
    DefinitionRequest,
    DiagramResponse,
    FlowchartRequest,
    MessageRequest,
    RenderRequest,
    RenderResponse,
    ReplyResponse,
    SessionResponse,
)
from flowchat.validation.diagram_validator import DiagramValidator

logger = get_logger(__name__)

router = APIRouter()


def _get_session(store: SessionStore, session_id: str) -> ConversationSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _generation_failed() -> dict:
    return {
        "status": "error",
        "definition": "",
        "error_message": GENERIC_FAILURE_MESSAGE,
        "validation": {},
    }


@router.get("/health")
def health():
    return {"status": "ok"}


# ============================
# CONVERSATION SESSIONS
# ============================

@router.post("/sessions", response_model=SessionResponse, status_code=201)
def create_session(store: SessionStore = Depends(get_session_store)):
    return store.create().to_dict()


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _get_session(store, session_id).to_dict()


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    try:
        store.delete(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/sessions/{session_id}/messages", response_model=SessionResponse)
async def post_message(
    session_id: str,
    request: MessageRequest,
    store: SessionStore = Depends(get_session_store),
):
    session = _get_session(store, session_id)

    if not request.content.strip():
        raise HTTPException(status_code=422, detail="Message is empty")

    try:
        await session.controller.submit(request.content)
    except TurnRejectedError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return session.to_dict()


# ============================
# STATELESS TURN
# ============================

@router.post("/converse", response_model=ReplyResponse)
async def converse(
    request: ConverseRequest,
    collaborator: ConversationCollaborator = Depends(get_collaborator),
):
    reply = await request_reply(collaborator, request.messages)
    return reply.model_dump()


# ============================
# SINGLE-SHOT GENERATION
# ============================

@router.post("/generate", response_model=DiagramResponse)
def generate_flowchart(
    request: FlowchartRequest,
    generator: FlowchartGenerator = Depends(get_generator),
):
    try:
        result = generator.generate(request)
    except (CollaboratorError, requests.RequestException):
        logger.error("Flowchart generation failed", exc_info=True)
        return _generation_failed()
    except Exception:
        # malformed model responses surface as KeyError / TypeError from the client
        logger.error("Unexpected error during flowchart generation", exc_info=True)
        return _generation_failed()

    if not result.recognized:
        return {
            "status": "error",
            "definition": "",
            "error_message": REPHRASE_MESSAGE,
            "validation": result.validation.to_dict(),
        }

    return {
        "status": "success" if result.validation.is_valid else "invalid",
        "definition": result.definition,
        "error_message": result.validation.error_message,
        "validation": result.validation.to_dict(),
    }


# ============================
# NORMALIZE / RENDER
# ============================

@router.post("/normalize", response_model=DiagramResponse)
def normalize_definition(
    request: DefinitionRequest,
    validator: DiagramValidator = Depends(get_validator),
):
    definition = normalize_mermaid(request.definition)
    validation = validator.validate(definition)

    return {
        "status": "success" if validation.is_valid else "invalid",
        "definition": definition,
        "error_message": validation.error_message,
        "validation": validation.to_dict(),
    }


@router.post("/render", response_model=RenderResponse)
def render_definition(
    request: RenderRequest,
    store: SessionStore = Depends(get_session_store),
    validator: DiagramValidator = Depends(get_validator),
    renderer: MermaidInkRenderer = Depends(get_renderer),
):
    if request.session_id:
        diagram_id = _get_session(store, request.session_id).diagram_ids.next_id()
    else:
        diagram_id = f"mermaid-chart-{uuid.uuid4().hex[:8]}"

    # Invalid definitions never reach the renderer
    validation = validator.validate(request.definition)
    if not validation.is_valid:
        return {"diagram_id": diagram_id, "error": validation.error_message}

    return renderer.render(request.definition, diagram_id).to_dict()
