from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Protocol

from allscreenshots_cli.app.core.errors import (
    BatchFailedError,
    CliError,
    FileWriteError,
    InputValidationError,
    OperationCancelledError,
    PollTimeoutError,
)
from allscreenshots_cli.app.core.inputs import validate_batch_size
from allscreenshots_cli.app.services.materializer import ResultMaterializer
from allscreenshots_cli.app.services.models import BulkDefaults, BulkJob, BulkJobItem, BulkRequest
from allscreenshots_cli.app.services.pacing import Pacer, SleepFn

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
# Exact, case-sensitive matches. Anything else keeps the poll loop running.
TERMINAL_BULK_STATUSES: FrozenSet[str] = frozenset({"COMPLETED", "FAILED", "PARTIAL"})
ITEM_COMPLETED = "COMPLETED"
UNKNOWN_ERROR = "Unknown error"
NO_RESULT_URL = "No result URL"


class BulkJobClient(Protocol):
    async def create_bulk_job(self, request: BulkRequest) -> BulkJob: ...

    async def get_bulk_job(self, bulk_id: str) -> BulkJob: ...

    async def get_job_result(self, job_id: str) -> bytes: ...


@dataclass
class BatchItemResult:
    index: int
    url: str
    success: bool
    job_id: Optional[str] = None
    path: Optional[Path] = None
    error: Optional[str] = None


@dataclass
class BatchSummary:
    bulk_job_id: str
    total: int
    output_dir: Path
    status: str = ""
    items: List[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.success)


class BatchOrchestrator:
    """Run one bulk job over many URLs and reconcile per-item results.

    Downloads are sequential unless ``concurrency`` is raised; either way each
    item succeeds or fails on its own and results keep the service's order.
    """

    def __init__(
        self,
        client: BulkJobClient,
        materializer: Optional[ResultMaterializer] = None,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        concurrency: int = 1,
        terminal_statuses: Iterable[str] = TERMINAL_BULK_STATUSES,
        timeout: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.materializer = materializer or ResultMaterializer()
        self.interval = interval
        self.concurrency = max(1, concurrency)
        self.terminal_statuses = frozenset(terminal_statuses)
        self.timeout = timeout
        self.stop_event = stop_event
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        urls: List[str],
        *,
        output_dir: Path,
        defaults: Optional[BulkDefaults] = None,
        extension: Optional[str] = None,
        progress: Optional[Callable[[int], None]] = None,
        on_created: Optional[Callable[[BulkJob], None]] = None,
        on_item: Optional[Callable[[BatchItemResult], None]] = None,
    ) -> BatchSummary:
        urls = list(urls)
        validate_batch_size(urls)
        if self.interval < 0:
            raise InputValidationError(f"Poll interval must not be negative (got {self.interval:g})")

        output_dir = Path(output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileWriteError(f"Failed to create directory {output_dir}: {exc}") from exc

        defaults = defaults or BulkDefaults()
        suffix = extension or (defaults.format.value if defaults.format else "png")

        bulk_job = await self.client.create_bulk_job(BulkRequest.for_urls(urls, defaults))
        logger.info("Created bulk job %s for %d URLs", bulk_job.id, len(urls))
        if on_created:
            on_created(bulk_job)

        final = await self._wait_for_terminal(bulk_job.id, progress)

        summary = BatchSummary(bulk_job_id=bulk_job.id, total=len(urls), output_dir=output_dir, status=final.status)
        summary.items = await self._collect(final.jobs, output_dir, suffix, on_item)

        logger.info(
            "Bulk job %s finished as %s: %d succeeded, %d failed",
            bulk_job.id,
            final.status,
            summary.succeeded,
            summary.failed,
        )
        if summary.succeeded == 0:
            raise BatchFailedError(summary)
        return summary

    async def _wait_for_terminal(self, bulk_id: str, progress: Optional[Callable[[int], None]]) -> BulkJob:
        pacer = Pacer(
            self.interval, timeout=self.timeout, stop_event=self.stop_event, sleep=self._sleep, clock=self._clock
        ).start()
        while True:
            if not await pacer.pause():
                raise OperationCancelledError(bulk_id)

            status = await self.client.get_bulk_job(bulk_id)
            if progress:
                progress(status.completed_jobs)
            if status.status in self.terminal_statuses:
                return status
            logger.debug("Bulk job %s is %s (%d done)", bulk_id, status.status, status.completed_jobs)
            if pacer.expired():
                raise PollTimeoutError(bulk_id, self.timeout or 0, status.status)

    async def _collect(
        self,
        items: List[BulkJobItem],
        output_dir: Path,
        suffix: str,
        on_item: Optional[Callable[[BatchItemResult], None]],
    ) -> List[BatchItemResult]:
        results: List[BatchItemResult] = []
        if self.concurrency == 1:
            for index, item in enumerate(items):
                result = await self._process_item(index, item, output_dir, suffix)
                results.append(result)
                if on_item:
                    on_item(result)
            return results

        sem = asyncio.Semaphore(self.concurrency)

        async def _bounded(index: int, item: BulkJobItem) -> BatchItemResult:
            async with sem:
                return await self._process_item(index, item, output_dir, suffix)

        results = list(await asyncio.gather(*(_bounded(i, item) for i, item in enumerate(items))))
        if on_item:
            for result in results:
                on_item(result)
        return results

    async def _process_item(self, index: int, item: BulkJobItem, output_dir: Path, suffix: str) -> BatchItemResult:
        if item.status != ITEM_COMPLETED:
            return BatchItemResult(
                index=index,
                url=item.url,
                success=False,
                job_id=item.id,
                error=item.error_message or UNKNOWN_ERROR,
            )
        if not item.result_url:
            return BatchItemResult(index=index, url=item.url, success=False, job_id=item.id, error=NO_RESULT_URL)

        path = self.materializer.batch_path(output_dir, item.url, index, suffix)
        try:
            data = await self.client.get_job_result(item.id)
        except CliError as exc:
            logger.warning("Failed to download %s: %s", item.url, exc)
            return BatchItemResult(
                index=index, url=item.url, success=False, job_id=item.id, error=f"Failed to download: {exc}"
            )
        try:
            await self.materializer.save(path, data)
        except FileWriteError as exc:
            logger.warning("Failed to save %s: %s", item.url, exc)
            return BatchItemResult(
                index=index, url=item.url, success=False, job_id=item.id, error=f"Failed to save: {exc}"
            )
        return BatchItemResult(index=index, url=item.url, success=True, job_id=item.id, path=path)
