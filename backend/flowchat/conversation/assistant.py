import asyncio
from abc import ABC, abstractmethod
from typing import List, Sequence

from flowchat.conversation.errors import CollaboratorError
from flowchat.conversation.models import (
    UNEXPECTED_REPLY_MESSAGE,
    CollaboratorReply,
    ConversationMessage,
)
from flowchat.conversation.transcript import to_chat_messages
from flowchat.dsl.grammar import has_connector, match_header
from flowchat.inference.base import LLMClient
from flowchat.inference.prompt import CONVERSATION_SYSTEM_PROMPT
from flowchat.logger import get_logger
from flowchat.utils.json_extract import extract_json

logger = get_logger(__name__)


class ConversationCollaborator(ABC):
    @abstractmethod
    async def converse(self, messages: List[ConversationMessage]) -> CollaboratorReply:
        """Answer the transcript with a question, a diagram or an error"""
        pass


def _looks_like_diagram(text: str) -> bool:
    first = text.strip().splitlines()[0] if text.strip() else ""
    return match_header(first) is not None or has_connector(text)


def parse_reply(raw: str) -> CollaboratorReply:
    """
    Interpret raw model text as a reply.

    The model is asked for {"type", "content"} JSON but does not always
    comply: bare flowchart text is taken as a diagram and bare prose as the
    next question.
    """
    if not raw or not raw.strip():
        raise CollaboratorError("The assistant returned an empty response")

    data = extract_json(raw)
    if not data:
        if _looks_like_diagram(raw):
            logger.warning("Assistant answered with bare flowchart text")
            return CollaboratorReply.diagram(raw.strip())
        logger.warning("Assistant answered with bare text, treating it as a question")
        return CollaboratorReply.question(raw.strip())

    try:
        return CollaboratorReply.from_payload(data)
    except ValueError as e:
        logger.warning("Rejected assistant reply %r: %s", data, e)
        return CollaboratorReply.error(UNEXPECTED_REPLY_MESSAGE)


class FlowchartAssistant(ConversationCollaborator):
    """
    Conversational collaborator backed by a chat-completions model.

    The blocking HTTP call runs in a worker thread so one slow model call
    does not hold up other sessions.
    """

    def __init__(self, client: LLMClient, system_prompt: str = CONVERSATION_SYSTEM_PROMPT):
        self.client = client
        self.system_prompt = system_prompt

    def build_messages(self, messages: Sequence[ConversationMessage]) -> list:
        return [{"role": "system", "content": self.system_prompt}] + to_chat_messages(messages)

    async def converse(self, messages: List[ConversationMessage]) -> CollaboratorReply:
        payload = self.build_messages(messages)
        logger.debug("Sending %d message(s) to the assistant", len(payload))

        raw = await asyncio.to_thread(self.client.generate, payload)
        return parse_reply(raw)
