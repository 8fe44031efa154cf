import asyncio
from datetime import datetime

import pytest

from allscreenshots_cli.app.core.errors import ApiError, DisplayError, FileWriteError, NetworkError
from allscreenshots_cli.app.services.materializer import ResultMaterializer
from allscreenshots_cli.app.services.models import ImageFormat, WatchSession, WatchTemplate
from allscreenshots_cli.app.services.watch import WatchLoop


class ScriptedCaptureClient:
    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.requests = []

    async def screenshot(self, request):
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BrokenDisplay:
    def __init__(self):
        self.calls = 0

    def display_bytes(self, data):
        self.calls += 1
        raise DisplayError("terminal went away")


class RecordingDisplay:
    def __init__(self):
        self.shown = []

    def display_bytes(self, data):
        self.shown.append(data)


def session(**kwargs):
    kwargs.setdefault("display", False)
    template = WatchTemplate(url="https://example.com", format=kwargs.pop("format", ImageFormat.PNG))
    return WatchSession(template=template, interval=kwargs.pop("interval", 5.0), **kwargs)


@pytest.mark.asyncio
async def test_bounded_watch_keeps_going_through_failures(fake_sleep):
    client = ScriptedCaptureClient([ApiError("boom", status=500)])
    attempts = []
    loop = WatchLoop(client, sleep=fake_sleep)

    report = await loop.run(session(max_captures=3), on_capture=attempts.append)

    assert (report.attempts, report.succeeded, report.failed) == (3, 0, 3)
    assert [a.iteration for a in attempts] == [1, 2, 3]
    assert fake_sleep.calls == [5.0, 5.0]


@pytest.mark.asyncio
async def test_unbounded_watch_runs_until_stopped(fake_sleep, png_bytes):
    stop = asyncio.Event()
    client = ScriptedCaptureClient([png_bytes])

    def _on_capture(attempt):
        if attempt.iteration == 4:
            stop.set()

    loop = WatchLoop(client, stop_event=stop, sleep=fake_sleep)
    report = await loop.run(session(max_captures=0), on_capture=_on_capture)

    assert report.attempts == 4
    assert report.succeeded == 4
    assert len(client.requests) == 4


@pytest.mark.asyncio
async def test_captures_are_saved_with_timestamped_names(tmp_path, fake_sleep, png_bytes):
    moments = iter([datetime(2024, 5, 1, 9, 30, 0), datetime(2024, 5, 1, 9, 30, 5)])
    client = ScriptedCaptureClient([png_bytes])
    attempts = []
    loop = WatchLoop(client, sleep=fake_sleep, clock=lambda: next(moments))

    await loop.run(session(max_captures=2, output_dir=tmp_path), on_capture=attempts.append)

    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "example_com_20240501_093000.png",
        "example_com_20240501_093005.png",
    ]
    assert attempts[0].outcome.dimensions == (4, 2)
    assert attempts[0].outcome.size == len(png_bytes)


@pytest.mark.asyncio
async def test_same_second_captures_overwrite(tmp_path, fake_sleep):
    client = ScriptedCaptureClient([b"first", b"second"])
    fixed = datetime(2024, 5, 1, 9, 30, 0)
    loop = WatchLoop(client, sleep=fake_sleep, clock=lambda: fixed)

    await loop.run(session(max_captures=2, output_dir=tmp_path))

    files = list(tmp_path.iterdir())
    assert len(files) == 1
    assert files[0].read_bytes() == b"second"


@pytest.mark.asyncio
async def test_display_failure_does_not_stop_the_loop(fake_sleep, png_bytes):
    display = BrokenDisplay()
    client = ScriptedCaptureClient([png_bytes])
    attempts = []
    loop = WatchLoop(client, ResultMaterializer(display), sleep=fake_sleep)

    report = await loop.run(session(max_captures=2, display=True), on_capture=attempts.append)

    assert report.succeeded == 2
    assert display.calls == 2
    assert not any(a.displayed for a in attempts)


@pytest.mark.asyncio
async def test_successful_captures_are_displayed(fake_sleep, png_bytes):
    display = RecordingDisplay()
    client = ScriptedCaptureClient([NetworkError("timed out", is_timeout=True), png_bytes])
    loop = WatchLoop(client, ResultMaterializer(display), sleep=fake_sleep)

    report = await loop.run(session(max_captures=2, display=True))

    assert (report.succeeded, report.failed) == (1, 1)
    assert display.shown == [png_bytes]


@pytest.mark.asyncio
async def test_write_error_ends_the_watch(tmp_path, fake_sleep, png_bytes):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    loop = WatchLoop(ScriptedCaptureClient([png_bytes]), sleep=fake_sleep)

    with pytest.raises(FileWriteError):
        await loop.run(session(max_captures=5, output_dir=blocker / "shots"))

    assert fake_sleep.calls == []
