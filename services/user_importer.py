"""
Users importer: gym members.

Duplicates are matched on email, then phone. New members get an auth
identity when they have an email, and a QR payload for check-in scanning.
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
from models.canonical import CanonicalUser
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from services.identity_provisioner import IdentityProvisioner
from services.row_importer import RowImporter

logger = structlog.get_logger(__name__)


class UserImporter(RowImporter):
    """Imports rows into the users table."""

    kind = RecordKind.USERS
    table = "users"

    def __init__(
        self,
        db,
        provisioner: IdentityProvisioner,
        resolver: Optional[DuplicateResolver] = None,
    ):
        super().__init__(db, resolver)
        self.provisioner = provisioner

    async def _import_canonical(
        self,
        user: CanonicalUser,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        existing = await self.resolver.find_existing(
            self.table,
            config.tenant_id,
            [{"email": user.email}, {"phone": user.phone}],
        )

        disposition = decide(existing, config.duplicate_handling)

        if disposition == Disposition.SKIP:
            return Skipped()

        if disposition == Disposition.UPDATE:
            await self._update(existing.id, user.to_update_row())
            logger.debug("user_updated", row=row_number, user_id=existing.id)
            return Updated(existing.id)

        user_id = await self.provisioner.provision(user.email, row_number)

        await self._insert(user.to_insert_row(config.tenant_id, user_id))
        logger.debug("user_imported", row=row_number, user_id=user_id)
        return Imported(user_id)
