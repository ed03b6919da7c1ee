"""
Staff importer: team members (trainers, front desk, managers).

Email is required and is the only natural key. Role names are resolved to
role ids from the roles table, loaded once per run.
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
from models.canonical import CanonicalStaff
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from services.identity_provisioner import IdentityProvisioner
from services.row_importer import RowImporter

logger = structlog.get_logger(__name__)


class StaffImporter(RowImporter):
    """Imports rows into the staff table."""

    kind = RecordKind.STAFF
    table = "staff"

    def __init__(
        self,
        db,
        provisioner: IdentityProvisioner,
        resolver: Optional[DuplicateResolver] = None,
    ):
        super().__init__(db, resolver)
        self.provisioner = provisioner
        self.role_ids: dict[str, str] = {}

    async def prepare(self, config: ImportConfig) -> None:
        """Load role name -> id (case-insensitive)."""
        try:
            result = await self.db.table("roles").select("id, name").execute()
        except Exception as e:
            logger.warning("roles_lookup_failed", error=str(e))
            self.role_ids = {}
            return

        self.role_ids = {
            str(row["name"]).strip().lower(): row["id"]
            for row in (result.data or [])
            if row.get("name")
        }
        logger.debug("roles_loaded", count=len(self.role_ids))

    def resolve_role_id(self, role_name: Optional[str]) -> Optional[str]:
        if not role_name:
            return None
        return self.role_ids.get(role_name.strip().lower())

    async def _import_canonical(
        self,
        staff: CanonicalStaff,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        role_id = self.resolve_role_id(staff.role_name)

        existing = await self.resolver.find_existing(
            self.table,
            config.tenant_id,
            [{"email": staff.email}],
        )

        disposition = decide(existing, config.duplicate_handling)

        if disposition == Disposition.SKIP:
            return Skipped()

        if disposition == Disposition.UPDATE:
            await self._update(existing.id, staff.to_update_row(role_id))
            logger.debug("staff_updated", row=row_number, staff_id=existing.id)
            return Updated(existing.id)

        staff_id = await self.provisioner.provision(staff.email, row_number)

        await self._insert(staff.to_insert_row(config.tenant_id, staff_id, role_id))
        logger.debug("staff_imported", row=row_number, staff_id=staff_id)
        return Imported(staff_id)
