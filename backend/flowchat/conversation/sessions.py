import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from flowchat.config import MAX_SESSIONS, SESSION_TTL
from flowchat.conversation.assistant import ConversationCollaborator
from flowchat.conversation.controller import TurnController
from flowchat.conversation.errors import SessionNotFoundError
from flowchat.conversation.models import TurnState
from flowchat.logger import get_logger
from flowchat.renderer.mermaid_ink import DiagramIdGenerator

logger = get_logger(__name__)


@dataclass
class ConversationSession:
    id: str
    controller: TurnController
    diagram_ids: DiagramIdGenerator = field(default_factory=DiagramIdGenerator)
    last_active: float = 0.0

    @property
    def is_busy(self) -> bool:
        return self.controller.turn_state is TurnState.AWAITING_REPLY

    def to_dict(self) -> dict:
        return {"session_id": self.id, **self.controller.state.to_dict()}


class SessionStore:
    """
    In-memory sessions keyed by ID.

    Every session gets its own controller and state; nothing is shared
    between sessions and nothing survives a restart. Sessions idle for
    longer than `ttl` seconds are dropped, and once `max_sessions` is
    reached the least recently used ones make room for new sessions.
    A session waiting on the assistant is never dropped.
    """

    def __init__(
        self,
        collaborator_factory: Callable[[], ConversationCollaborator],
        ttl: Optional[float] = SESSION_TTL,
        max_sessions: Optional[int] = MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.collaborator_factory = collaborator_factory
        self.ttl = ttl
        self.max_sessions = max_sessions
        self.clock = clock
        self._sessions: Dict[str, ConversationSession] = {}

    def create(self) -> ConversationSession:
        self.prune()

        session_id = uuid.uuid4().hex
        session = ConversationSession(
            id=session_id,
            controller=TurnController(self.collaborator_factory()),
            last_active=self.clock(),
        )
        self._sessions[session_id] = session
        logger.info("Session %s started (%d active)", session_id, len(self))
        return session

    def get(self, session_id: str) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is None or self._expired(session):
            self._sessions.pop(session_id, None)
            raise SessionNotFoundError(session_id)

        session.last_active = self.clock()
        return session

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)
        logger.info("Session %s ended", session_id)

    def prune(self) -> int:
        """Drops expired sessions, then the oldest idle ones over the cap."""
        doomed = [s.id for s in self._sessions.values() if self._expired(s)]

        if self.max_sessions is not None:
            excess = len(self._sessions) - len(doomed) - self.max_sessions + 1
            if excess > 0:
                idle = sorted(
                    (s for s in self._sessions.values() if s.id not in doomed and not s.is_busy),
                    key=lambda s: s.last_active,
                )
                doomed.extend(s.id for s in idle[:excess])

        for session_id in doomed:
            del self._sessions[session_id]
        if doomed:
            logger.info("Dropped %d idle session(s), %d active", len(doomed), len(self))
        return len(doomed)

    def _expired(self, session: ConversationSession) -> bool:
        if self.ttl is None or session.is_busy:
            return False
        return self.clock() - session.last_active > self.ttl

    def __len__(self) -> int:
        return len(self._sessions)
