"""Typed failures raised by the session coordinator."""

from uuid import UUID


class SessionError(Exception):
    """Base class for planning session failures."""


class SessionNotFoundError(SessionError):
    """Raised when a session id does not resolve."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class NotParticipantError(SessionError):
    """Raised when the caller is neither initiator nor partner."""

    def __init__(self, session_id: UUID, user_id: UUID) -> None:
        super().__init__(f"User {user_id} is not a participant of session {session_id}")
        self.session_id = session_id
        self.user_id = user_id


class SessionExpiredError(SessionError):
    """Raised when a session is past its expiry time."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} has expired")
        self.session_id = session_id


class SessionClosedError(SessionError):
    """Raised when mutating a session that is already completed or expired."""

    def __init__(self, session_id: UUID, status: str) -> None:
        super().__init__(f"Session {session_id} is {status}")
        self.session_id = session_id
        self.status = status


class SessionStoreError(SessionError, RuntimeError):
    """Raised when the backing store fails to read or write a session."""


class AnalysisError(SessionError):
    """Raised when the recommendation engine fails or returns no result."""
