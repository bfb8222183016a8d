"""Typed errors raised by the carpool domain and store layers."""
from __future__ import annotations


class CarpoolError(Exception):
    """Base class for failures that map onto an HTTP status code."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CarpoolError):
    """Malformed or out-of-range input."""

    status_code = 400


class NotFoundError(CarpoolError):
    """A referenced rider, driver or car does not exist."""

    status_code = 404


class ConflictError(CarpoolError):
    """A uniqueness rule of the store rejected the write."""

    status_code = 409


class InternalError(CarpoolError):
    """Unexpected store failure; the message returned to clients stays generic."""

    status_code = 500

    def __init__(self, message: str = "internal error") -> None:
        super().__init__(message)


__all__ = [
    "CarpoolError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
