from functools import lru_cache

from flowchat.conversation.assistant import ConversationCollaborator, FlowchartAssistant
from flowchat.conversation.generator import FlowchartGenerator
from flowchat.conversation.sessions import SessionStore
from flowchat.inference.config import get_llm_client
from flowchat.renderer.mermaid_ink import MermaidInkRenderer
from flowchat.validation.diagram_validator import DiagramValidator


def get_collaborator() -> ConversationCollaborator:
    return FlowchartAssistant(get_llm_client())


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(get_collaborator)


def get_generator() -> FlowchartGenerator:
    return FlowchartGenerator(get_llm_client())


def get_validator() -> DiagramValidator:
    return DiagramValidator()


def get_renderer() -> MermaidInkRenderer:
    return MermaidInkRenderer()
