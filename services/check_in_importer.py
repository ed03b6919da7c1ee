"""
Check-ins importer: historical member visits.

Rows reference members by email. Lookups go through a per-run cache so a
file with thousands of visits by the same members costs one query per member.
A visit is a duplicate when the same member already has a check-in at the
same time.
"""

from typing import Optional
import structlog

from models.imports import (
    RecordKind,
    ImportConfig,
    RowOutcome,
    Imported,
    Updated,
    Skipped,
)
from models.canonical import CanonicalCheckIn
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from services.row_importer import RowImporter, MemberLookup

logger = structlog.get_logger(__name__)


class CheckInImporter(RowImporter):
    """Imports rows into the client_checkins table."""

    kind = RecordKind.CHECK_INS
    table = "client_checkins"

    def __init__(self, db, resolver: Optional[DuplicateResolver] = None):
        super().__init__(db, resolver)
        self.members = MemberLookup(db)

    async def prepare(self, config: ImportConfig) -> None:
        self.members.clear()

    async def _import_canonical(
        self,
        check_in: CanonicalCheckIn,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        member = await self.members.find(config.tenant_id, check_in.user_email)
        if member is None:
            return Skipped(f"User not found with email {check_in.user_email}")

        user_id = member["id"]

        existing = await self.resolver.find_existing(
            self.table,
            config.tenant_id,
            [{"user_id": user_id, "check_in_time": check_in.check_in_time.isoformat()}],
        )

        disposition = decide(existing, config.duplicate_handling)

        if disposition == Disposition.SKIP:
            return Skipped()

        if disposition == Disposition.UPDATE:
            await self._update(existing.id, check_in.to_update_row())
            return Updated(existing.id)

        check_in_id = await self._insert(check_in.to_insert_row(config.tenant_id, user_id))
        logger.debug("check_in_imported", row=row_number, user_id=user_id)
        return Imported(check_in_id)
