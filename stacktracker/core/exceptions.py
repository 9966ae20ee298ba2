"""
Errors raised by the session core.
"""
from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker errors."""


class PreconditionError(TrackerError):
    """A lifecycle operation was called when its precondition does not hold."""


class NoActiveSession(PreconditionError):
    """An operation needs a current session but none is attached."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: no active session")


class InvalidStateTransition(PreconditionError):
    """The session's status does not allow the requested operation."""

    def __init__(self, operation: str, current_status, session_id: Optional[str] = None):
        self.operation = operation
        self.current_status = current_status
        self.session_id = session_id
        status = getattr(current_status, 'value', current_status)
        super().__init__(f"Cannot {operation} a session that is {status}")


class InvalidOperation(TrackerError, ValueError):
    """The operation does not apply to this session or its arguments are invalid."""


class PersistenceError(TrackerError):
    """The session store failed to persist changes."""
