"""
Import coordinator.

Drives one import run: rows are processed strictly in input order, one at a
time, each through the row importer for the configured kind. Cancellation
is checked before every row; rows already written stay written.

Caller-facing entry points: import_data() and auto_detect_mappings().
"""

import asyncio
from typing import Any, Callable, Optional, Union
import structlog
from pydantic import ValidationError as SchemaValidationError

from config import settings, get_supabase_client, get_auth_client
from models.imports import (
    RecordKind,
    ImportConfig,
    ImportResult,
    ParsedRecord,
    RowOutcome,
    Imported,
    Updated,
    Skipped,
    Failed,
)
from services.check_in_importer import CheckInImporter
from services.duplicate_resolver import DuplicateResolver
from services.header_mapper import auto_detect_mappings, TARGET_FIELDS
from services.identity_provisioner import IdentityProvisioner, SupabaseIdentityProvider
from services.membership_importer import MembershipImporter
from services.package_importer import PackageImporter
from services.row_importer import RowImporter
from services.staff_importer import StaffImporter
from services.user_importer import UserImporter

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[ImportResult], None]

__all__ = [
    "ImportService",
    "get_import_service",
    "import_data",
    "auto_detect_mappings",
    "TARGET_FIELDS",
    "fold_outcome",
]


def fold_outcome(result: ImportResult, outcome: RowOutcome, row_number: int) -> None:
    """
    Add one row outcome to the running totals.

    Skips with a reason and failures get a "Row N: ..." message.
    """
    if isinstance(outcome, Imported):
        result.imported += 1
    elif isinstance(outcome, Updated):
        result.updated += 1
    elif isinstance(outcome, Skipped):
        result.skipped += 1
        if outcome.reason:
            result.errors.append(f"Row {row_number}: {outcome.reason}")
    elif isinstance(outcome, Failed):
        result.failed += 1
        result.errors.append(f"Row {row_number}: {outcome.reason}")
    else:
        raise TypeError(f"Unknown row outcome: {outcome!r}")


def _rejected_config_result(message: str) -> ImportResult:
    return ImportResult(success=False, errors=[message])


class ImportService:
    """
    Runs imports against one store and one identity provisioner.

    Importers are created per run so per-run caches never leak between runs.
    """

    def __init__(self, db, provisioner: IdentityProvisioner):
        self.db = db
        self.provisioner = provisioner

    def create_importer(self, kind: RecordKind) -> RowImporter:
        """Fresh row importer for one run."""
        resolver = DuplicateResolver(self.db)

        if kind == RecordKind.USERS:
            return UserImporter(self.db, self.provisioner, resolver)
        if kind == RecordKind.STAFF:
            return StaffImporter(self.db, self.provisioner, resolver)
        if kind == RecordKind.PACKAGES:
            return PackageImporter(self.db, resolver)
        if kind == RecordKind.CHECK_INS:
            return CheckInImporter(self.db, resolver)
        if kind == RecordKind.MEMBERSHIPS:
            return MembershipImporter(self.db, resolver)
        raise ValueError(f"No importer for {kind}")

    async def import_data(
        self,
        records: list[ParsedRecord],
        config: Union[ImportConfig, dict[str, Any]],
        cancel_event: Optional[asyncio.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """
        Import all rows of one file.

        Never raises for row-level problems or a malformed config; those are
        reported in the returned result.

        Args:
            records: Parsed rows in file order
            config: Run configuration (model or plain dict)
            cancel_event: Set to stop before the next row
            on_progress: Called with the running result after each row

        Returns:
            ImportResult with counts and ordered row messages
        """
        if not isinstance(config, ImportConfig):
            try:
                config = ImportConfig.model_validate(config)
            except SchemaValidationError as e:
                if any("record_kind" in err["loc"] for err in e.errors()):
                    logger.warning("import_rejected_unknown_kind")
                    return _rejected_config_result("Unknown data type")
                logger.warning("import_rejected_invalid_config", errors=e.error_count())
                return _rejected_config_result(f"Invalid import configuration: {e.errors()[0]['msg']}")

        importer = self.create_importer(config.record_kind)
        result = ImportResult(total_records=len(records))

        logger.info(
            "import_started",
            kind=config.record_kind.value,
            tenant_id=config.tenant_id,
            duplicate_handling=config.duplicate_handling.value,
            total_records=len(records)
        )

        await importer.prepare(config)

        for row_number, record in enumerate(records, start=1):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                result.errors.append(f"Import cancelled by user after {result.processed} records")
                logger.info(
                    "import_cancelled",
                    kind=config.record_kind.value,
                    processed=result.processed,
                    total_records=result.total_records
                )
                break

            outcome = await importer.import_row(record, config, row_number)
            fold_outcome(result, outcome, row_number)

            if on_progress is not None:
                on_progress(result)

        result.success = result.failed == 0

        logger.info(
            "import_finished",
            kind=config.record_kind.value,
            imported=result.imported,
            updated=result.updated,
            skipped=result.skipped,
            failed=result.failed,
            cancelled=result.cancelled
        )

        return result


# Singleton instance
_import_service: Optional[ImportService] = None


async def get_import_service() -> ImportService:
    """Get or create ImportService wired to the configured Supabase project."""
    global _import_service
    if _import_service is None:
        db = await get_supabase_client()
        auth = await get_auth_client()
        provisioner = IdentityProvisioner(
            SupabaseIdentityProvider(auth),
            pacing_seconds=settings.identity_pacing_seconds,
            cooldown_seconds=settings.identity_rate_limit_cooldown_seconds,
        )
        _import_service = ImportService(db, provisioner)
    return _import_service


async def import_data(
    records: list[ParsedRecord],
    config: Union[ImportConfig, dict[str, Any]],
    cancel_event: Optional[asyncio.Event] = None,
) -> ImportResult:
    """Run an import with the default service."""
    service = await get_import_service()
    return await service.import_data(records, config, cancel_event)
