"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Import
    RowValidationError,
    UnknownRecordKindError,
    ImportFileParseError,
    ImportRunNotFoundError,

    # Identity provider
    IdentityProviderError,
    IdentityRateLimitError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Import
    "RowValidationError",
    "UnknownRecordKindError",
    "ImportFileParseError",
    "ImportRunNotFoundError",

    # Identity provider
    "IdentityProviderError",
    "IdentityRateLimitError",
]
