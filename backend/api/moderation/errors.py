from __future__ import annotations


class ModerationError(Exception):
    """Base class for errors surfaced to moderation callers."""

    status_code: int = 500
    label: str = "Internal server error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ModerationError):
    """Missing or invalid input. Raised before any store mutation."""

    status_code = 400
    label = "Invalid request"


class WorkflowError(ValidationError):
    """Raised when a status transition is not permitted."""

    label = "Invalid transition"


class NotFoundError(ModerationError):
    status_code = 404
    label = "Content not found"


class StoreError(ModerationError):
    """The underlying store rejected or failed a call."""

    status_code = 500
    label = "Store error"


class PublicationError(StoreError):
    label = "Publication failed"
