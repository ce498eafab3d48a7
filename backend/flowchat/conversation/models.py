from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, field_validator

from flowchat.validation.diagram_validator import DiagramValidationResult


GREETING = (
    "Hi! Describe the feature you want to map out and I'll ask a few "
    "questions before drawing the flowchart."
)
DIAGRAM_ACKNOWLEDGEMENT = "Thanks, I have everything I need. Here is your flowchart."
GENERIC_FAILURE_MESSAGE = (
    "Sorry, something went wrong while contacting the assistant. Please try again."
)
REPHRASE_MESSAGE = (
    "I had trouble turning that into a flowchart. Could you rephrase the last "
    "answer or add a bit more detail?"
)
UNEXPECTED_REPLY_MESSAGE = (
    "The assistant returned a response I couldn't understand. Please try again."
)


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class CollaboratorReply(BaseModel):
    """
    What the assistant answered for one turn.

    Exactly one of question / diagram / error, carried by `type`. Model output
    is untrusted, so from_payload() rejects unknown types and missing content.
    """

    type: Literal["question", "diagram", "error"]
    content: str

    @field_validator("type", mode="before")
    @classmethod
    def _accept_flowchart_alias(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "flowchart":
                return "diagram"
        return value

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reply has no content")
        return value

    @classmethod
    def question(cls, content: str) -> "CollaboratorReply":
        return cls(type="question", content=content)

    @classmethod
    def diagram(cls, content: str) -> "CollaboratorReply":
        return cls(type="diagram", content=content)

    @classmethod
    def error(cls, content: str) -> "CollaboratorReply":
        return cls(type="error", content=content)

    @classmethod
    def from_payload(cls, payload: Any) -> "CollaboratorReply":
        """Build a reply from untyped output. Raises ValueError."""
        if isinstance(payload, cls):
            # instances built with model_construct() skip validation
            payload = payload.model_dump()
        if not isinstance(payload, dict):
            raise ValueError(f"Reply must be an object, got {type(payload).__name__}")

        content = payload.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Reply has no content")

        # pydantic's ValidationError is a ValueError
        return cls.model_validate({"type": payload.get("type"), "content": content})


class TurnState(Enum):
    COLLECTING = "collecting"
    AWAITING_REPLY = "awaiting_reply"
    COMPLETE = "complete"


@dataclass
class ConversationState:
    messages: List[ConversationMessage] = field(default_factory=list)
    turn_state: TurnState = TurnState.COLLECTING

    # Last diagram produced and its validation outcome
    diagram: Optional[str] = None
    validation: Optional[DiagramValidationResult] = None

    @classmethod
    def start(cls, greeting: Optional[str] = GREETING) -> "ConversationState":
        state = cls()
        if greeting:
            state.add_message("assistant", greeting)
        return state

    @property
    def is_complete(self) -> bool:
        return self.turn_state is TurnState.COMPLETE

    @property
    def diagram_error(self) -> Optional[str]:
        if self.validation is None:
            return None
        return self.validation.error_message

    def add_message(self, role: str, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.turn_state.value,
            "is_complete": self.is_complete,
            "messages": [m.model_dump() for m in self.messages],
            "diagram": self.diagram,
            "diagram_error": self.diagram_error,
            "validation": self.validation.to_dict() if self.validation else None,
        }
