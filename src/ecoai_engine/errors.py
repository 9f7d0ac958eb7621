"""Error taxonomy for the EcoAI carbon engine.

Every error raised by the engine derives from EcoAIError and carries a
stable ErrorCode plus a details dict. The API layer maps error codes to
HTTP status codes in one place (see main.py).
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PARTIAL_IMPORT = "PARTIAL_IMPORT"


class EcoAIError(Exception):
    """Base class for all engine errors."""

    error_code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}


class ValidationError(EcoAIError):
    """Malformed or out-of-range input.

    Args:
        message: Human-readable description.
        field: Name of the offending input field.
        value: The rejected value, echoed back for the caller.
    """

    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: str, value: Any = None) -> None:
        super().__init__(message, details={"field": field, "value": value})
        self.field = field
        self.value = value


class NotFoundError(EcoAIError):
    """A referenced company, department, region or threshold does not exist."""

    error_code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "id": str(identifier)},
        )
        self.resource = resource
        self.identifier = identifier


class PartialImportFailure(EcoAIError):
    """A bulk import finished with some rows rejected.

    Not fatal: the accepted rows are already persisted. Carries the
    per-row rejection reasons so callers can fix and resubmit them.
    """

    error_code = ErrorCode.PARTIAL_IMPORT

    def __init__(self, records_imported: int, rejected_rows: list[dict[str, Any]]) -> None:
        super().__init__(
            f"{len(rejected_rows)} row(s) rejected, {records_imported} imported",
            details={"records_imported": records_imported, "rejected_rows": rejected_rows},
        )
        self.records_imported = records_imported
        self.rejected_rows = rejected_rows
