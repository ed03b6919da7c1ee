"""
Memberships importer: applies membership periods onto existing members.

There is no separate memberships table; a membership is the package,
expiry and status held on the member's users row. A member who already
holds a membership expiry is the "duplicate" for disposition purposes.
"""

from typing import Optional
import structlog

from models.imports import (
    RecordKind,
    ImportConfig,
    RowOutcome,
    Updated,
    Skipped,
    ExistingEntityRef,
)
from models.canonical import CanonicalMembership
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from services.row_importer import RowImporter, MemberLookup

logger = structlog.get_logger(__name__)


class MembershipImporter(RowImporter):
    """Writes membership fields onto rows of the users table."""

    kind = RecordKind.MEMBERSHIPS
    table = "users"

    def __init__(self, db, resolver: Optional[DuplicateResolver] = None):
        super().__init__(db, resolver)
        self.members = MemberLookup(db)
        self.package_ids: dict[str, Optional[str]] = {}

    async def prepare(self, config: ImportConfig) -> None:
        self.members.clear()
        self.package_ids = {}

    async def resolve_package_id(self, tenant_id: str, package_name: Optional[str]) -> Optional[str]:
        """Package id by name within the gym; None if unknown."""
        if not package_name:
            return None

        key = package_name.lower()
        if key not in self.package_ids:
            result = await (
                self.db.table("packages")
                .select("id")
                .eq("gym_id", tenant_id)
                .eq("name", package_name)
                .limit(1)
                .execute()
            )
            self.package_ids[key] = result.data[0]["id"] if result.data else None
            if not result.data:
                logger.warning("membership_package_not_found", package=package_name)

        return self.package_ids[key]

    async def _import_canonical(
        self,
        membership: CanonicalMembership,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        member = await self.members.find(
            config.tenant_id,
            membership.user_email,
            columns="id, membership_expiry",
        )
        if member is None:
            return Skipped(f"User not found with email {membership.user_email}")

        existing = None
        if member.get("membership_expiry"):
            existing = ExistingEntityRef(id=member["id"], row=member)

        if decide(existing, config.duplicate_handling) == Disposition.SKIP:
            return Skipped()

        package_id = await self.resolve_package_id(config.tenant_id, membership.package_name)

        await self._update(member["id"], membership.to_update_row(package_id))
        self.members.remember(
            membership.user_email,
            {**member, "membership_expiry": membership.expiry_date},
        )
        logger.debug("membership_applied", row=row_number, user_id=member["id"])
        return Updated(member["id"])
