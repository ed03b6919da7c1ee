"""
Custom exception classes for the application.

Import-specific errors sit below the generic base classes. Row-level errors
are converted into row outcomes by the importers and never reach the API.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_RUN_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT ERRORS
# ===================

class RowValidationError(ValidationError):
    """A row is missing required data and will be skipped."""

    def __init__(self, reason: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_ROW_INVALID",
            message=reason,
            details=details
        )


class UnknownRecordKindError(ValidationError):
    """Record kind is not one of the importable kinds."""

    def __init__(self, kind: str):
        super().__init__(
            code="IMPORT_UNKNOWN_RECORD_KIND",
            message="Unknown data type",
            details={
                "provided": kind,
                "valid": ["users", "staff", "packages", "check_ins", "memberships"]
            }
        )


class ImportFileParseError(ValidationError):
    """Uploaded import file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="IMPORT_FILE_PARSE_ERROR",
            message=message,
            details=details
        )


class ImportRunNotFoundError(NotFoundError):
    """No in-memory import run with this id."""

    def __init__(self, run_id: str):
        super().__init__(
            resource="Import run",
            identifier=run_id,
            code="IMPORT_RUN_NOT_FOUND"
        )


# ===================
# IDENTITY PROVIDER ERRORS
# ===================

class IdentityProviderError(ExternalServiceError):
    """Identity creation failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="identity",
            message=message,
            details=details
        )


class IdentityRateLimitError(IdentityProviderError):
    """Identity provider rejected the call with a rate limit."""

    def __init__(self, message: str = "Identity provider rate limit reached", details: Optional[dict] = None):
        super().__init__(message=message, details=details)
        self.code = "IDENTITY_RATE_LIMITED"
        self.status_code = 429
