import asyncio
from typing import Any, List, Optional, Sequence

from flowchat.conversation.assistant import ConversationCollaborator
from flowchat.conversation.errors import TurnRejectedError
from flowchat.conversation.models import (
    DIAGRAM_ACKNOWLEDGEMENT,
    GENERIC_FAILURE_MESSAGE,
    GREETING,
    REPHRASE_MESSAGE,
    CollaboratorReply,
    ConversationMessage,
    ConversationState,
    TurnState,
)
from flowchat.conversation.transcript import validate_transcript
from flowchat.dsl.mermaid import is_fallback, normalize_mermaid
from flowchat.logger import get_logger
from flowchat.validation.diagram_validator import DiagramValidator

logger = get_logger(__name__)


async def request_reply(
    collaborator: ConversationCollaborator,
    messages: Sequence[Any],
) -> CollaboratorReply:
    """
    One exchange with the collaborator. Never raises (except cancellation).

    - malformed transcripts are answered locally, the collaborator is not called
    - failures and empty answers become a generic error reply
    - diagram content comes back normalized; text that is not recognizable
      as a flowchart becomes an error asking the user to rephrase
    """
    problem = validate_transcript(messages)
    if problem:
        return CollaboratorReply.error(problem)

    try:
        result = await collaborator.converse(list(messages))
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.error("Collaborator call failed", exc_info=True)
        return CollaboratorReply.error(GENERIC_FAILURE_MESSAGE)

    if result is None:
        logger.error("Collaborator returned no reply")
        return CollaboratorReply.error(GENERIC_FAILURE_MESSAGE)

    try:
        reply = CollaboratorReply.from_payload(result)
    except ValueError as e:
        logger.error("Collaborator returned an unusable reply %r: %s", result, e)
        return CollaboratorReply.error(GENERIC_FAILURE_MESSAGE)

    if reply.type != "diagram":
        return reply

    definition = normalize_mermaid(reply.content)
    if is_fallback(definition):
        logger.warning("Diagram reply is not a recognizable flowchart: %r", reply.content[:200])
        return CollaboratorReply.error(REPHRASE_MESSAGE)

    return CollaboratorReply.diagram(definition)


class TurnController:
    """
    Drives one conversation: Collecting -> AwaitingReply -> Collecting | Complete.

    Only one collaborator call can be outstanding. Submissions while a reply is
    pending, or after the diagram has been produced, raise TurnRejectedError
    and leave the state untouched.
    """

    def __init__(
        self,
        collaborator: ConversationCollaborator,
        validator: Optional[DiagramValidator] = None,
        greeting: Optional[str] = GREETING,
        state: Optional[ConversationState] = None,
    ):
        self.collaborator = collaborator
        self.validator = validator or DiagramValidator()
        self.state = state or ConversationState.start(greeting)

    @property
    def turn_state(self) -> TurnState:
        return self.state.turn_state

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete

    @property
    def messages(self) -> List[ConversationMessage]:
        return list(self.state.messages)

    def _check_can_submit(self, text: str) -> None:
        if self.state.turn_state is TurnState.COMPLETE:
            raise TurnRejectedError("The flowchart is already complete")
        if self.state.turn_state is TurnState.AWAITING_REPLY:
            raise TurnRejectedError("Still waiting for the previous reply")
        if not text:
            raise TurnRejectedError("Message is empty")

    async def submit(self, user_text: str) -> CollaboratorReply:
        text = (user_text or "").strip()
        self._check_can_submit(text)

        self.state.add_message("user", text)
        self.state.turn_state = TurnState.AWAITING_REPLY
        logger.info("Turn %d submitted", len(self.state.messages))

        try:
            reply = await request_reply(self.collaborator, self.state.messages)
        except asyncio.CancelledError:
            # let the caller retry after an external timeout
            self.state.turn_state = TurnState.COLLECTING
            raise

        self._apply(reply)
        return reply

    def _apply(self, reply: CollaboratorReply) -> None:
        if reply.type == "question":
            self.state.add_message("assistant", reply.content)
            self.state.turn_state = TurnState.COLLECTING
            return

        if reply.type == "error":
            self.state.add_message("assistant", reply.content)
            self.state.turn_state = TurnState.COLLECTING
            logger.info("Turn ended with an error reply")
            return

        self.state.add_message("assistant", DIAGRAM_ACKNOWLEDGEMENT)
        self.state.diagram = reply.content
        self.state.validation = self.validator.validate(reply.content)
        self.state.turn_state = TurnState.COMPLETE
        logger.info("Conversation complete: %s", self.state.validation.get_summary())
