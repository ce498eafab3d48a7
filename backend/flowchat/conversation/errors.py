class ConversationError(Exception):
    """Base class for conversation failures."""


class TurnRejectedError(ConversationError):
    """A submission arrived while the conversation could not take one."""


class SessionNotFoundError(ConversationError):
    def __init__(self, session_id: str):
        super().__init__(f"Unknown session '{session_id}'")
        self.session_id = session_id


class CollaboratorError(ConversationError):
    """The assistant could not produce a usable answer."""
