"""
Error taxonomy for the ingestion engine.

Every error carries a stable ``code`` used by the entrypoints to build
structured error responses.
"""

from typing import Any


class VitalsError(Exception):
    """Base class for all errors raised by the engine."""

    code = "internal_error"

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: list[dict[str, Any]] = details or []

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(VitalsError):
    """Malformed or out-of-range payload, rejected before any persistence."""

    code = "validation_error"


class NotFoundError(VitalsError):
    """Referenced person does not exist in the store."""

    code = "not_found"


class StoreError(VitalsError):
    """Store adapter failed while reading or writing."""

    code = "store_error"


class SyncTimeoutError(VitalsError, TimeoutError):
    """Caller-imposed deadline exceeded while processing a sync."""

    code = "timeout"
