"""
Packages importer: membership plans offered by a gym. Matched on name.
"""

import structlog

from models.imports import (
    RecordKind,
    ImportConfig,
    RowOutcome,
    Imported,
    Updated,
    Skipped,
)
from models.canonical import CanonicalPackage
from services.duplicate_resolver import Disposition, decide
from services.row_importer import RowImporter

logger = structlog.get_logger(__name__)


class PackageImporter(RowImporter):
    """Imports rows into the packages table."""

    kind = RecordKind.PACKAGES
    table = "packages"

    async def _import_canonical(
        self,
        package: CanonicalPackage,
        config: ImportConfig,
        row_number: int,
    ) -> RowOutcome:
        existing = await self.resolver.find_existing(
            self.table,
            config.tenant_id,
            [{"name": package.name}],
        )

        disposition = decide(existing, config.duplicate_handling)

        if disposition == Disposition.SKIP:
            return Skipped()

        if disposition == Disposition.UPDATE:
            await self._update(existing.id, package.to_update_row())
            return Updated(existing.id)

        package_id = await self._insert(package.to_insert_row(config.tenant_id))
        logger.debug("package_imported", row=row_number, name=package.name)
        return Imported(package_id)
