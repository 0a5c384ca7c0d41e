"""Error taxonomy shared by the store client and the terminal session."""

from typing import Optional


class TddProError(RuntimeError):
    pass


class ValidationError(TddProError):
    """Local record invariant violated; raised before any external call."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class InvokerError(TddProError):
    """External tool call failed or returned malformed content."""

    def __init__(self, message: str, tool: Optional[str] = None):
        super().__init__(message)
        self.tool = tool
        self.message = message


class ServerNotFoundError(InvokerError):
    pass


class NotFoundError(TddProError):
    def __init__(self, record_id: str, message: Optional[str] = None):
        super().__init__(message or f"{record_id} not found")
        self.record_id = record_id


class ModeConflictError(TddProError):
    """A second overlay was requested while another one owns input."""


__all__ = [
    "TddProError",
    "ValidationError",
    "InvokerError",
    "ServerNotFoundError",
    "NotFoundError",
    "ModeConflictError",
]
