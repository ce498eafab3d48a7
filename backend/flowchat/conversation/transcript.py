from typing import Any, Optional, Sequence

from flowchat.conversation.models import ConversationMessage
from flowchat.logger import get_logger

logger = get_logger(__name__)


ROLES = ("user", "assistant")


def _fields(message: Any):
    if isinstance(message, ConversationMessage):
        return message.role, message.content
    if isinstance(message, dict):
        return message.get("role"), message.get("content")
    return None, None


def validate_transcript(messages: Any) -> Optional[str]:
    """
    Checks a transcript before it is sent to the assistant.

    Returns a user-facing error message, or None when the transcript can be
    sent as-is.
    """
    if not isinstance(messages, Sequence) or isinstance(messages, (str, bytes)):
        logger.error("Invalid transcript: expected a list, got %s", type(messages).__name__)
        return "Invalid input format: missing conversation messages. Please try again."

    if not messages:
        logger.error("Invalid transcript: no messages")
        return "Invalid input format: the conversation is empty. Please try again."

    for index, message in enumerate(messages):
        role, content = _fields(message)

        if not isinstance(role, str) or not isinstance(content, str):
            logger.error("Invalid transcript: malformed message at %d: %r", index, message)
            return "Invalid input format: malformed message in conversation. Please try again."

        if role not in ROLES:
            logger.error("Invalid transcript: unknown role %r at %d", role, index)
            return f"Invalid input format: unknown role '{role}' in conversation."

        if not content.strip():
            logger.error("Invalid transcript: empty %s message at %d", role, index)
            return "Invalid input format: empty message in conversation. Please try again."

    return None


def to_chat_messages(messages: Sequence[Any]) -> list:
    """Plain role/content dicts in transcript order."""
    chat = []
    for message in messages:
        role, content = _fields(message)
        chat.append({"role": role, "content": content})
    return chat
