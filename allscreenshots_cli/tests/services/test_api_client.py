import httpx
import pytest

from allscreenshots_cli.app.core.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NoApiKeyError,
    NotFoundError,
    RateLimitError,
)
from allscreenshots_cli.app.services.api_client import ScreenshotsClient
from allscreenshots_cli.app.services.models import (
    BulkRequest,
    CaptureItem,
    ComposeOutput,
    ComposeRequest,
    ImageFormat,
    JobStatus,
    LayoutType,
    ScheduleUpdate,
    ScreenshotRequest,
)


class FakeTransport:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def request(self, method, path, *, json, headers, timeout):
        if not self._responses:
            raise AssertionError("No more responses configured")
        response = self._responses.pop(0)
        self.calls.append((method, path, json, headers))
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        return None


def make_response(status_code: int, body=None, *, content: bytes = None) -> httpx.Response:
    request = httpx.Request("GET", "https://api.allscreenshots.com")
    if content is not None:
        return httpx.Response(status_code=status_code, content=content, request=request)
    return httpx.Response(status_code=status_code, json=body, request=request)


def make_client(responses, **kwargs) -> ScreenshotsClient:
    kwargs.setdefault("backoff_base", 0.0)
    return ScreenshotsClient("as_test_key", transport=FakeTransport(responses), **kwargs)


def test_client_requires_api_key():
    with pytest.raises(NoApiKeyError):
        ScreenshotsClient(None, transport=FakeTransport([]))


@pytest.mark.asyncio
async def test_get_job_parses_camel_case_fields():
    body = {
        "id": "job_1",
        "status": "processing",
        "url": "https://example.com",
        "statusUrl": "https://api/jobs/job_1",
        "createdAt": "2024-05-01T10:00:00Z",
    }
    client = make_client([make_response(200, body)])
    job = await client.get_job("job_1")
    assert job.status is JobStatus.PROCESSING
    assert job.status_url == "https://api/jobs/job_1"
    assert job.created_at == "2024-05-01T10:00:00Z"
    assert client._transport.calls[0][:2] == ("GET", "/v1/screenshots/jobs/job_1")
    assert client._transport.calls[0][3]["X-API-Key"] == "as_test_key"


@pytest.mark.asyncio
async def test_create_job_sends_camel_case_payload_without_unset_fields():
    client = make_client([make_response(200, {"id": "job_2", "status": "QUEUED"})])
    request = ScreenshotRequest(url="https://example.com", full_page=True, device="iPhone 14")
    job = await client.create_job(request)
    assert job.id == "job_2"
    method, path, payload, _ = client._transport.calls[0]
    assert (method, path) == ("POST", "/v1/screenshots/async")
    assert payload == {"url": "https://example.com", "device": "iPhone 14", "fullPage": True}


@pytest.mark.asyncio
async def test_bulk_job_items_keep_raw_status_strings():
    body = {
        "id": "bulk_1",
        "status": "PARTIAL",
        "completedJobs": 2,
        "jobs": [
            {"id": "a", "url": "https://a.com", "status": "COMPLETED", "resultUrl": "https://r/a"},
            {"id": "b", "url": "https://b.com", "status": "failed", "errorMessage": "boom"},
        ],
    }
    client = make_client([make_response(200, body)])
    bulk = await client.create_bulk_job(BulkRequest.for_urls(["https://a.com", "https://b.com"]))
    assert bulk.completed_jobs == 2
    assert [item.status for item in bulk.jobs] == ["COMPLETED", "failed"]
    assert bulk.jobs[1].error_message == "boom"
    assert client._transport.calls[0][2] == {"urls": [{"url": "https://a.com"}, {"url": "https://b.com"}]}


@pytest.mark.asyncio
async def test_client_retries_on_retryable_status():
    responses = [
        make_response(503, {"message": "busy"}),
        make_response(200, content=b"\x89PNG"),
    ]
    client = make_client(responses, max_attempts=2)
    data = await client.screenshot(ScreenshotRequest(url="https://example.com"))
    assert data == b"\x89PNG"
    assert len(client._transport.calls) == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_rate_limit_is_raised_after_attempts_are_exhausted():
    responses = [
        make_response(429, {"error": {"code": "rate_limit_exceeded", "message": "slow down"}}),
        make_response(429, {"error": {"code": "rate_limit_exceeded", "message": "slow down"}}),
    ]
    client = make_client(responses, max_attempts=2)
    with pytest.raises(RateLimitError) as excinfo:
        await client.get_job("job_1")
    assert excinfo.value.status == 429
    assert excinfo.value.message == "slow down"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, error_cls",
    [(401, AuthenticationError), (403, AuthenticationError), (404, NotFoundError), (418, ApiError)],
)
async def test_non_retryable_errors_are_classified(status_code, error_cls):
    client = make_client([make_response(status_code, {"code": "x", "message": "nope"})])
    with pytest.raises(error_cls) as excinfo:
        await client.get_job("job_1")
    assert excinfo.value.message == "nope"
    assert len(client._transport.calls) == 1


@pytest.mark.asyncio
async def test_transport_failures_become_network_errors():
    request = httpx.Request("GET", "https://api.allscreenshots.com")
    responses = [httpx.ConnectError("refused", request=request)]
    client = make_client(responses, max_attempts=1)
    with pytest.raises(NetworkError) as excinfo:
        await client.get_job_result("job_1")
    assert excinfo.value.is_connect


@pytest.mark.asyncio
async def test_unexpected_payload_is_an_api_error():
    client = make_client([make_response(200, {"status": "QUEUED"})])
    with pytest.raises(ApiError):
        await client.get_job("job_1")


@pytest.mark.asyncio
async def test_list_jobs_accepts_wrapped_and_bare_lists():
    job = {"id": "j", "status": "COMPLETED"}
    client = make_client([make_response(200, {"jobs": [job]}), make_response(200, [job, job])])
    assert len(await client.list_jobs()) == 1
    assert len(await client.list_jobs()) == 2


@pytest.mark.asyncio
async def test_compose_sends_captures_and_output_settings():
    body = {"url": "https://cdn/compose.png", "width": 1200, "height": 800, "fileSize": 2048, "renderTimeMs": 950}
    client = make_client([make_response(200, body)])
    request = ComposeRequest(
        captures=[CaptureItem(url="https://a.com"), CaptureItem(url="https://b.com", device="iPhone 14")],
        output=ComposeOutput(layout=LayoutType.GRID, format=ImageFormat.WEBP, columns=2),
    )

    result = await client.compose(request)

    assert (result.width, result.height, result.render_time_ms) == (1200, 800, 950)
    method, path, payload, _ = client._transport.calls[0]
    assert (method, path) == ("POST", "/v1/screenshots/compose")
    assert payload == {
        "captures": [{"url": "https://a.com"}, {"url": "https://b.com", "device": "iPhone 14"}],
        "output": {"layout": "grid", "format": "webp", "columns": 2},
    }


@pytest.mark.asyncio
async def test_schedule_endpoints_use_their_paths():
    schedule = {"id": "sch_1", "name": "Home", "url": "https://a.com", "schedule": "0 9 * * *", "executionCount": None}
    client = make_client(
        [
            make_response(200, {"schedules": [schedule]}),
            make_response(200, schedule),
            make_response(204, content=b""),
            make_response(200, {**schedule, "status": "PAUSED"}),
            make_response(200, {"totalExecutions": 0, "executions": None}),
        ]
    )

    listed = await client.list_schedules()
    updated = await client.update_schedule("sch_1", ScheduleUpdate(name="Home"))
    await client.delete_schedule("sch_1")
    paused = await client.schedule_action("sch_1", "pause")
    history = await client.schedule_history("sch_1", limit=5)

    assert listed[0].execution_count == 0
    assert updated.name == "Home"
    assert paused.status == "PAUSED"
    assert history.executions == []
    assert [call[:2] for call in client._transport.calls] == [
        ("GET", "/v1/schedules"),
        ("PATCH", "/v1/schedules/sch_1"),
        ("DELETE", "/v1/schedules/sch_1"),
        ("POST", "/v1/schedules/sch_1/pause"),
        ("GET", "/v1/schedules/sch_1/history?limit=5"),
    ]
    assert client._transport.calls[1][2] == {"name": "Home"}


@pytest.mark.asyncio
async def test_unknown_schedule_action_is_rejected_locally():
    client = make_client([])
    with pytest.raises(ValueError):
        await client.schedule_action("sch_1", "explode")
    assert client._transport.calls == []


@pytest.mark.asyncio
async def test_usage_report_tolerates_missing_sections():
    body = {"tier": "pro", "currentPeriod": {"screenshotsCount": 12, "bandwidthFormatted": "3 MB"}, "history": None}
    client = make_client([make_response(200, body)])

    usage = await client.get_usage()

    assert usage.tier == "pro"
    assert usage.current_period.screenshots_count == 12
    assert usage.quota is None
    assert usage.history == []
    assert client._transport.calls[0][:2] == ("GET", "/v1/usage")
