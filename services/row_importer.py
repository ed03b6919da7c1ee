"""
Row importer base class.

A row importer turns one parsed row into exactly one outcome. Validation
failures become Skipped, write failures become Failed; nothing raises out of
import_row().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import structlog

from exceptions import RowValidationError
from models.imports import (
    RecordKind,
    ImportConfig,
    ParsedRecord,
    RowOutcome,
    Skipped,
    Failed,
)
from models.canonical import CanonicalRecord
from services.duplicate_resolver import DuplicateResolver
from services.record_normalizer import normalize_record

logger = structlog.get_logger(__name__)


def describe_store_error(error: Exception) -> str:
    """
    Human-readable message for a failed write.

    PostgREST errors carry message, details and hint; the non-empty parts
    are joined. Other exceptions fall back to str().
    """
    parts = []
    for attr in ("message", "details", "hint"):
        value = getattr(error, attr, None)
        if value and isinstance(value, str) and value not in parts:
            parts.append(value)
    if parts:
        return " - ".join(parts)
    return str(error) or type(error).__name__ or "Unknown error"


class RowImporter(ABC):
    """
    Shared contract for the per-kind importers.

    Subclasses set kind/table and implement _import_canonical().
    """

    kind: RecordKind
    table: str

    def __init__(self, db, resolver: Optional[DuplicateResolver] = None):
        self.db = db
        self.resolver = resolver or DuplicateResolver(db)

    async def prepare(self, config: ImportConfig) -> None:
        """Called once before the first row of a run."""
        return None

    async def import_row(
        self,
        record: ParsedRecord,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        """
        Import one row.

        Args:
            record: Parsed row
            config: Run configuration
            row_number: 1-based position in the input

        Returns:
            Imported, Updated, Skipped or Failed
        """
        try:
            canonical = normalize_record(record, config.field_mappings, self.kind)
            return await self._import_canonical(canonical, config, row_number)

        except RowValidationError as e:
            return Skipped(e.message)

        except Exception as e:
            reason = describe_store_error(e)
            logger.error(
                "import_row_failed",
                kind=self.kind.value,
                row=row_number,
                error=reason,
                code=getattr(e, "code", None),
                error_type=type(e).__name__
            )
            return Failed(reason)

    @abstractmethod
    async def _import_canonical(
        self,
        canonical: CanonicalRecord,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        """Duplicate check plus the single persistence write."""

    # ===================
    # WRITE HELPERS
    # ===================

    async def _insert(self, row: dict[str, Any]) -> Optional[str]:
        result = await self.db.table(self.table).insert(row).execute()
        if result.data:
            return result.data[0].get("id")
        return row.get("id")

    async def _update(self, entity_id: str, row: dict[str, Any]) -> None:
        await self.db.table(self.table).update(row).eq("id", entity_id).execute()


class MemberLookup:
    """
    Email -> member id cache shared by importers that reference members.

    Populated lazily and never invalidated within a run.
    """

    def __init__(self, db):
        self.db = db
        self._cache: dict[str, dict] = {}

    def clear(self) -> None:
        self._cache.clear()

    def remember(self, email: str, member: dict) -> None:
        self._cache[email] = member

    async def find(self, tenant_id: str, email: str, columns: str = "id") -> Optional[dict]:
        cached = self._cache.get(email)
        if cached is not None:
            return cached

        result = await (
            self.db.table("users")
            .select(columns)
            .eq("gym_id", tenant_id)
            .eq("email", email)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None

        self._cache[email] = result.data[0]
        return result.data[0]
