"""Error taxonomy shared by the engine, the service and the HTTP layer."""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for rejected operations. ``status`` mirrors an HTTP code."""

    status = 500
    code = "INTERNAL"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFound(EngineError):
    """Raised when a session, player or meld does not exist."""

    status = 404
    code = "NOT_FOUND"


class Forbidden(EngineError):
    """Raised for host-only operations by non-hosts and for acting out of turn."""

    status = 403
    code = "FORBIDDEN"


class IllegalMove(EngineError):
    """Raised when the state machine or a rule validator rejects an action."""

    status = 400
    code = "ILLEGAL_MOVE"


class Conflict(EngineError):
    """Raised for structural mismatches such as a stale turn-order payload."""

    status = 409
    code = "CONFLICT"


class InternalError(EngineError):
    """Raised when storage or another collaborator fails."""
