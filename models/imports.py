"""
Import run models.

Covers the run configuration, the per-row outcome sum type and the
aggregated run result, plus request/response bodies for the import API.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from models.base import BaseSchema


# A row as produced by the file parser: source column -> raw cell value
ParsedRecord = dict[str, Any]


class RecordKind(str, Enum):
    """Importable record kinds."""
    USERS = "users"
    STAFF = "staff"
    PACKAGES = "packages"
    CHECK_INS = "check_ins"
    MEMBERSHIPS = "memberships"


class DuplicateHandling(str, Enum):
    """What to do when a row matches an existing record."""
    SKIP = "skip"
    UPDATE = "update"
    CREATE_NEW = "create_new"


class TargetField(BaseSchema):
    """One canonical field a source column can be mapped onto."""

    field: str
    label: str
    required: bool = False


class FieldMapping(BaseModel):
    """
    Source column -> canonical field.

    An empty source_field means the target is unmapped.
    """
    model_config = ConfigDict(frozen=True)

    source_field: str = Field("", description="Column name in the uploaded file")
    target_field: str = Field(..., description="Canonical field name")


class ImportConfig(BaseModel):
    """Configuration for one import run. Immutable for the run."""
    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1, description="Gym UUID all rows are imported under")
    record_kind: RecordKind = Field(..., description="Kind of record in the file")
    duplicate_handling: DuplicateHandling = Field(
        DuplicateHandling.SKIP,
        description="Disposition for rows matching an existing record"
    )
    field_mappings: list[FieldMapping] = Field(default_factory=list)


class ImportResult(BaseModel):
    """
    Aggregated result of an import run.

    imported + skipped + updated + failed == total_records unless cancelled.
    """

    success: bool = True
    total_records: int = 0
    imported: int = 0
    skipped: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def processed(self) -> int:
        """Rows that reached a final outcome."""
        return self.imported + self.skipped + self.updated + self.failed


# ===================
# ROW OUTCOMES
# ===================

@dataclass(frozen=True)
class Imported:
    """A new record was created."""
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class Updated:
    """An existing record was updated in place."""
    entity_id: str


@dataclass(frozen=True)
class Skipped:
    """Row was not written. Duplicate skips carry no reason."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class Failed:
    """Row could not be written."""
    reason: str


RowOutcome = Union[Imported, Updated, Skipped, Failed]


@dataclass(frozen=True)
class ExistingEntityRef:
    """A stored record matched by a duplicate lookup."""
    id: str
    row: Optional[dict] = None


# ===================
# API MODELS
# ===================

class DetectMappingsRequest(BaseSchema):
    """Headers from an uploaded file to auto-map."""

    headers: list[str] = Field(..., description="Column headers in file order")
    record_kind: RecordKind


class ImportRequest(BaseModel):
    """Records plus run configuration."""

    records: list[ParsedRecord] = Field(..., description="Parsed rows, in file order")
    config: ImportConfig


class ImportPreviewResponse(BaseModel):
    """Parsed upload with suggested mappings."""

    filename: str
    record_kind: RecordKind
    headers: list[str]
    total_records: int
    records: list[ParsedRecord]
    suggested_mappings: list[FieldMapping]


class ImportRunStatus(str, Enum):
    """Lifecycle of an in-memory import run."""
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ImportRunResponse(BaseModel):
    """Progress snapshot of an in-memory import run."""

    run_id: str
    status: ImportRunStatus
    record_kind: RecordKind
    total_records: int
    processed: int
    result: Optional[ImportResult] = None
