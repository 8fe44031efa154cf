from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

from allscreenshots_cli.app.core.errors import (
    JobCancelledError,
    JobFailedError,
    OperationCancelledError,
    PollTimeoutError,
)
from allscreenshots_cli.app.services.models import Job, JobStatus, ScreenshotRequest
from allscreenshots_cli.app.services.pacing import Pacer, SleepFn

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

StatusCallback = Callable[[Job], None]


class JobClient(Protocol):
    async def create_job(self, request: ScreenshotRequest) -> Job: ...

    async def get_job(self, job_id: str) -> Job: ...

    async def get_job_result(self, job_id: str) -> bytes: ...


class JobStatusPoller:
    """Drive a single async capture job to a terminal state.

    Polling has no retry cap and, unless ``timeout`` is given, no deadline: a job
    that never leaves QUEUED/PROCESSING is polled until the process is stopped
    or ``stop_event`` is set.
    """

    def __init__(
        self,
        client: JobClient,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.interval = interval
        self.timeout = timeout
        self.stop_event = stop_event
        self._sleep = sleep
        self._clock = clock

    async def submit(self, request: ScreenshotRequest) -> Job:
        job = await self.client.create_job(request)
        logger.info("Created job %s for %s", job.id, request.url)
        return job

    async def submit_and_wait(
        self,
        request: ScreenshotRequest,
        *,
        on_created: Optional[Callable[[Job], None]] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> bytes:
        job = await self.submit(request)
        if on_created:
            on_created(job)
        return await self.wait(job.id, on_status=on_status)

    async def wait(self, job_id: str, *, on_status: Optional[StatusCallback] = None) -> bytes:
        """Poll ``job_id`` until it is terminal and return the result bytes."""
        pacer = Pacer(
            self.interval, timeout=self.timeout, stop_event=self.stop_event, sleep=self._sleep, clock=self._clock
        ).start()
        last_status: Optional[JobStatus] = None

        while True:
            if not await pacer.pause():
                raise OperationCancelledError(job_id)

            job = await self.client.get_job(job_id)
            if job.status != last_status:
                logger.debug("Job %s is %s", job_id, job.status.value)
            last_status = job.status

            if job.status is JobStatus.COMPLETED:
                return await self.client.get_job_result(job_id)
            if job.status is JobStatus.FAILED:
                raise JobFailedError(job_id, job.error_message, job.error_code)
            if job.status is JobStatus.CANCELLED:
                raise JobCancelledError(job_id)

            if on_status:
                on_status(job)
            if pacer.expired():
                raise PollTimeoutError(job_id, self.timeout or 0, job.status.value)
