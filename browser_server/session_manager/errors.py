"""Error taxonomy shared by the registry, page operations, and the HTTP layer."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for errors surfaced to control-surface callers."""

    kind = "session_error"
    status = 500


class SessionNotFound(SessionError):
    """The session id has no live record (never existed, closed, or evicted)."""

    kind = "not_found"
    status = 404

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class CapacityExceeded(SessionError):
    """The registry is full even after reclaiming idle sessions."""

    kind = "capacity_exceeded"
    status = 503

    def __init__(self, max_sessions: int):
        super().__init__(f"Maximum session limit reached ({max_sessions})")
        self.max_sessions = max_sessions


class OperationFailed(SessionError):
    """A browser or page primitive failed. The session itself is left intact."""

    kind = "operation_failed"
    status = 500


class InvalidRequest(SessionError):
    """The caller sent parameters the server cannot act on."""

    kind = "invalid_request"
    status = 400
