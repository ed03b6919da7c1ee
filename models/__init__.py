"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.imports import (
    ParsedRecord,
    RecordKind,
    DuplicateHandling,
    TargetField,
    FieldMapping,
    ImportConfig,
    ImportResult,
    Imported,
    Updated,
    Skipped,
    Failed,
    RowOutcome,
    ExistingEntityRef,
    DetectMappingsRequest,
    ImportRequest,
    ImportPreviewResponse,
    ImportRunStatus,
    ImportRunResponse,
)
from models.canonical import (
    CanonicalUser,
    CanonicalStaff,
    CanonicalPackage,
    CanonicalCheckIn,
    CanonicalMembership,
    CanonicalRecord,
)

__all__ = [
    # Base
    "BaseSchema",

    # Import runs
    "ParsedRecord",
    "RecordKind",
    "DuplicateHandling",
    "TargetField",
    "FieldMapping",
    "ImportConfig",
    "ImportResult",
    "Imported",
    "Updated",
    "Skipped",
    "Failed",
    "RowOutcome",
    "ExistingEntityRef",
    "DetectMappingsRequest",
    "ImportRequest",
    "ImportPreviewResponse",
    "ImportRunStatus",
    "ImportRunResponse",

    # Canonical records
    "CanonicalUser",
    "CanonicalStaff",
    "CanonicalPackage",
    "CanonicalCheckIn",
    "CanonicalMembership",
    "CanonicalRecord",
]
