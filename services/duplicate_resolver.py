"""
Duplicate resolver: finds an existing record matching an incoming row.

Natural keys are tried strongest first (e.g. email, then phone) and the first
match wins. A failed lookup counts as "no duplicate" so that one flaky query
does not abort the row; the row then proceeds to creation.
"""

from enum import Enum
from typing import Any, Optional
import structlog

from models.imports import DuplicateHandling, ExistingEntityRef

logger = structlog.get_logger(__name__)


class Disposition(str, Enum):
    """What the importer does with a row after the duplicate check."""
    CREATE = "create"
    SKIP = "skip"
    UPDATE = "update"


class DuplicateResolver:
    """
    Tenant-scoped duplicate lookup.

    Each candidate is a dict of column -> value that must all match
    (composite keys allowed). Candidates with any empty value are skipped.
    """

    def __init__(self, db, tenant_column: str = "gym_id"):
        self.db = db
        self.tenant_column = tenant_column

    async def find_existing(
        self,
        table: str,
        tenant_id: str,
        candidates: list[dict[str, Any]],
        columns: str = "id",
    ) -> Optional[ExistingEntityRef]:
        """
        Return the first stored record matching a candidate key.

        Args:
            table: Table to search
            tenant_id: Gym the row is imported under
            candidates: Ordered natural keys, strongest first
            columns: Columns to select (must include id)

        Returns:
            ExistingEntityRef or None
        """
        for predicates in candidates:
            if not predicates or any(v in (None, "") for v in predicates.values()):
                continue

            try:
                query = (
                    self.db.table(table)
                    .select(columns)
                    .eq(self.tenant_column, tenant_id)
                )
                for column, value in predicates.items():
                    query = query.eq(column, value)

                result = await query.limit(1).execute()

            except Exception as e:
                # Fail-open: trades a possible duplicate for run robustness
                logger.warning(
                    "duplicate_lookup_failed",
                    table=table,
                    keys=list(predicates.keys()),
                    error=str(e)
                )
                continue

            if result.data:
                row = result.data[0]
                logger.debug(
                    "duplicate_found",
                    table=table,
                    keys=list(predicates.keys()),
                    existing_id=row["id"]
                )
                return ExistingEntityRef(id=row["id"], row=row)

        return None


def decide(
    existing: Optional[ExistingEntityRef],
    handling: DuplicateHandling,
) -> Disposition:
    """
    Disposition for a row given the duplicate lookup result.

    No match always creates; create_new ignores matches.
    """
    if existing is None or handling == DuplicateHandling.CREATE_NEW:
        return Disposition.CREATE
    if handling == DuplicateHandling.UPDATE:
        return Disposition.UPDATE
    return Disposition.SKIP
