"""
In-memory import runs.

Lets the API start an import in the background, poll its progress and
cancel it. State lives in this process only; a restart forgets every run.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional
import structlog

from config import settings
from exceptions import ImportRunNotFoundError
from models.imports import (
    ImportConfig,
    ImportResult,
    ImportRunStatus,
    ImportRunResponse,
    ParsedRecord,
)
from services.import_service import ImportService, get_import_service

logger = structlog.get_logger(__name__)


@dataclass
class ImportRun:
    """One background import and its live progress."""
    run_id: str
    config: ImportConfig
    total_records: int
    status: ImportRunStatus = ImportRunStatus.RUNNING
    progress: Optional[ImportResult] = None
    result: Optional[ImportResult] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None
    finished_at: Optional[float] = None

    @property
    def processed(self) -> int:
        snapshot = self.result or self.progress
        return snapshot.processed if snapshot else 0

    def to_response(self) -> ImportRunResponse:
        return ImportRunResponse(
            run_id=self.run_id,
            status=self.status,
            record_kind=self.config.record_kind,
            total_records=self.total_records,
            processed=self.processed,
            result=self.result,
        )


class ImportRunService:
    """
    Registry of background import runs.

    Finished runs are evicted once they are older than `ttl_seconds` or
    when more than `max_finished` of them are held. Running imports are
    never evicted.
    """

    def __init__(
        self,
        import_service: ImportService,
        ttl_seconds: Optional[float] = None,
        max_finished: Optional[int] = None,
        clock=time.monotonic,
    ):
        self.import_service = import_service
        self.ttl_seconds = settings.import_run_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.max_finished = settings.import_run_max_finished if max_finished is None else max_finished
        self._clock = clock
        self._runs: dict[str, ImportRun] = {}

    def _evict_finished(self) -> None:
        now = self._clock()
        finished = sorted(
            (run for run in self._runs.values() if run.finished_at is not None),
            key=lambda run: run.finished_at
        )

        expired = [run for run in finished if now - run.finished_at > self.ttl_seconds]
        expired_ids = {run.run_id for run in expired}
        kept = [run for run in finished if run.run_id not in expired_ids]
        overflow = kept[:max(len(kept) - self.max_finished, 0)]

        for run in expired + overflow:
            del self._runs[run.run_id]
        if expired or overflow:
            logger.debug(
                "import_runs_evicted",
                expired=len(expired),
                overflow=len(overflow),
                remaining=len(self._runs)
            )

    def start_run(self, records: list[ParsedRecord], config: ImportConfig) -> ImportRun:
        """
        Schedule an import on the running event loop.

        Args:
            records: Parsed rows
            config: Run configuration

        Returns:
            The registered run (status RUNNING)
        """
        self._evict_finished()

        run = ImportRun(
            run_id=str(uuid.uuid4()),
            config=config,
            total_records=len(records),
        )
        self._runs[run.run_id] = run
        run.task = asyncio.create_task(self._execute(run, records))

        logger.info(
            "import_run_started",
            run_id=run.run_id,
            kind=config.record_kind.value,
            total_records=run.total_records
        )
        return run

    async def _execute(self, run: ImportRun, records: list[ParsedRecord]) -> None:
        def on_progress(result: ImportResult) -> None:
            run.progress = result

        try:
            result = await self.import_service.import_data(
                records,
                run.config,
                cancel_event=run.cancel_event,
                on_progress=on_progress,
            )
        except Exception as e:
            logger.error("import_run_failed", run_id=run.run_id, error=str(e))
            run.status = ImportRunStatus.FAILED
            run.result = run.progress or ImportResult(total_records=run.total_records)
            run.result.success = False
            run.result.errors.append(f"Import aborted: {e}")
            run.finished_at = self._clock()
            return

        run.result = result
        run.status = ImportRunStatus.CANCELLED if result.cancelled else ImportRunStatus.COMPLETED
        run.finished_at = self._clock()
        logger.info("import_run_finished", run_id=run.run_id, status=run.status.value)

    def get_run(self, run_id: str) -> ImportRun:
        """
        Raises:
            ImportRunNotFoundError: Unknown run id
        """
        self._evict_finished()
        run = self._runs.get(run_id)
        if run is None:
            raise ImportRunNotFoundError(run_id)
        return run

    def cancel_run(self, run_id: str) -> ImportRun:
        """
        Ask a run to stop before its next row.

        Raises:
            ImportRunNotFoundError: Unknown run id
        """
        run = self.get_run(run_id)
        if run.status == ImportRunStatus.RUNNING:
            run.cancel_event.set()
            logger.info("import_run_cancel_requested", run_id=run_id)
        return run


# Singleton instance
_import_run_service: Optional[ImportRunService] = None


async def get_import_run_service() -> ImportRunService:
    """Get or create ImportRunService."""
    global _import_run_service
    if _import_run_service is None:
        _import_run_service = ImportRunService(await get_import_service())
    return _import_run_service
