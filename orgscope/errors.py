"""
Structured error hierarchy for the hierarchy store and scope engine.

Every failure in the repository/engine layer surfaces as one of these types;
the HTTP layer renders them with ``to_dict()``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and handling."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE"


class ErrorCode(str, Enum):
    """Stable error codes returned to API callers."""

    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    INVALID_PATH = "INVALID_PATH"
    INVALID_LEVEL = "INVALID_LEVEL"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    IMMUTABLE_FIELD = "IMMUTABLE_FIELD"
    DUPLICATE_NODE_ID = "DUPLICATE_NODE_ID"
    DUPLICATE_GROUP_CODE = "DUPLICATE_GROUP_CODE"
    SECTION_UNAVAILABLE = "SECTION_UNAVAILABLE"
    SECTION_NOT_FOUND = "SECTION_NOT_FOUND"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class OrgScopeError(Exception):
    """Base exception carrying an error code, category and HTTP status."""

    category = ErrorCategory.VALIDATION
    default_code = ErrorCode.INVALID_PAYLOAD
    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: Dict[str, Any] = {
            "error": self.error_code.value,
            "message": self.message,
            "category": self.category.value,
            "http_status": self.http_status,
        }
        if self.context:
            result["context"] = self.context
        if self.original_error is not None:
            result["original_error"] = str(self.original_error)
        return result


class NotFoundError(OrgScopeError):
    """A path or id that does not exist."""

    category = ErrorCategory.NOT_FOUND
    default_code = ErrorCode.NODE_NOT_FOUND
    http_status = 404


class ValidationError(OrgScopeError):
    """Missing/invalid fields or a level mismatch; nothing was written."""

    category = ErrorCategory.VALIDATION
    default_code = ErrorCode.INVALID_PAYLOAD
    http_status = 422


class ConflictError(OrgScopeError):
    """A uniqueness pre-check failed."""

    category = ErrorCategory.CONFLICT
    default_code = ErrorCode.DUPLICATE_GROUP_CODE
    http_status = 409


class SectionUnavailableError(ConflictError):
    """A section is already claimed by another planning group."""

    default_code = ErrorCode.SECTION_UNAVAILABLE

    def __init__(self, section_ids, *, context: Optional[Dict[str, Any]] = None) -> None:
        self.section_ids = sorted(section_ids)
        details = dict(context or {})
        details.setdefault("section_ids", self.section_ids)
        super().__init__(
            "This section is no longer available. Refresh the available sections and try again.",
            context=details,
        )


class StorageError(OrgScopeError):
    """Underlying read or write failure."""

    category = ErrorCategory.STORAGE
    default_code = ErrorCode.STORAGE_FAILURE
    http_status = 503


__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "OrgScopeError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "SectionUnavailableError",
    "StorageError",
]
