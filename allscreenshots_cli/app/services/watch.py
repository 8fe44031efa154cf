from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from allscreenshots_cli.app.core.errors import ApiError, NetworkError
from allscreenshots_cli.app.services.materializer import ResultMaterializer
from allscreenshots_cli.app.services.models import CaptureOutcome, ScreenshotRequest, WatchSession
from allscreenshots_cli.app.services.pacing import Pacer, SleepFn

logger = logging.getLogger(__name__)


class CaptureClient(Protocol):
    async def screenshot(self, request: ScreenshotRequest) -> bytes: ...


@dataclass
class WatchAttempt:
    iteration: int
    outcome: Optional[CaptureOutcome] = None
    error: Optional[Exception] = None
    displayed: bool = False

    @property
    def success(self) -> bool:
        return self.outcome is not None


@dataclass
class WatchReport:
    attempts: int = 0
    succeeded: int = 0
    failed: int = 0


class WatchLoop:
    """Capture the same page over and over at a constant interval.

    Remote capture failures are reported and the loop keeps going; only a local
    write error ends it early.
    """

    def __init__(
        self,
        client: CaptureClient,
        materializer: Optional[ResultMaterializer] = None,
        *,
        stop_event: Optional[asyncio.Event] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.materializer = materializer or ResultMaterializer()
        self.stop_event = stop_event
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        session: WatchSession,
        *,
        on_attempt: Optional[Callable[[int], None]] = None,
        on_capture: Optional[Callable[[WatchAttempt], None]] = None,
    ) -> WatchReport:
        pacer = Pacer(session.interval, stop_event=self.stop_event, sleep=self._sleep)
        request = session.template.to_request()
        suffix = session.template.format.value
        report = WatchReport()

        while not pacer.stopped:
            session.iteration += 1
            if on_attempt:
                on_attempt(session.iteration)

            attempt = await self._capture_once(session, request, suffix)
            report.attempts += 1
            if attempt.success:
                report.succeeded += 1
            else:
                report.failed += 1
            if on_capture:
                on_capture(attempt)
            if attempt.outcome is not None and session.display:
                attempt.displayed = self.materializer.show(attempt.outcome.data)

            if session.exhausted():
                logger.info("Maximum captures (%d) reached", session.max_captures)
                break
            if not await pacer.pause():
                break

        return report

    async def _capture_once(self, session: WatchSession, request: ScreenshotRequest, suffix: str) -> WatchAttempt:
        try:
            data = await self.client.screenshot(request)
        except (ApiError, NetworkError) as exc:
            logger.warning("Capture #%d of %s failed: %s", session.iteration, request.url, exc)
            return WatchAttempt(iteration=session.iteration, error=exc)

        outcome = CaptureOutcome(data=data, dimensions=self.materializer.dimensions(data))
        if session.output_dir is not None:
            path = self.materializer.watch_path(session.output_dir, request.url, suffix, now=self._clock())
            outcome.path = await self.materializer.save(path, data)
        return WatchAttempt(iteration=session.iteration, outcome=outcome)
