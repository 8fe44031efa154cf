from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Protocol, Type

import httpx
from pydantic import ValidationError

from allscreenshots_cli.app.core.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NoApiKeyError,
    NotFoundError,
    RateLimitError,
    RequestValidationError,
)
from allscreenshots_cli.app.core.settings import settings
from allscreenshots_cli.app.services.models import (
    BulkJob,
    BulkRequest,
    ComposeRequest,
    ComposeResult,
    Job,
    QuotaStatus,
    Schedule,
    ScheduleHistory,
    ScheduleRequest,
    ScheduleUpdate,
    ScreenshotRequest,
    UsageReport,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

_STATUS_ERRORS: Dict[int, Type[ApiError]] = {
    400: RequestValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    422: RequestValidationError,
    429: RateLimitError,
}

USER_AGENT = "allscreenshots-cli/0.1.0"
SCHEDULE_ACTIONS = ("pause", "resume", "trigger")


class AsyncTransport(Protocol):
    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        timeout: float,
    ) -> httpx.Response: ...

    async def close(self) -> None: ...


class HttpxTransport:
    """httpx-based transport with connection pooling."""

    def __init__(self, base_url: str):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=None)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        timeout: float,
    ) -> httpx.Response:
        return await self._client.request(method, path, json=json, headers=headers, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()


def classify_response(response: httpx.Response) -> ApiError:
    """Turn a non-2xx response into the matching ``ApiError`` subclass."""
    code: Optional[str] = None
    message: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        detail = body.get("error")
        if isinstance(detail, dict):
            code = detail.get("code")
            message = detail.get("message")
        elif isinstance(detail, str):
            message = detail
        code = code or body.get("code")
        message = message or body.get("message") or body.get("detail")

    if not message:
        message = response.text.strip() or response.reason_phrase or f"HTTP {response.status_code}"

    error_cls = _STATUS_ERRORS.get(response.status_code, ApiError)
    return error_cls(str(message), status=response.status_code, code=code)


class ScreenshotsClient:
    """Thin async client for the screenshot API job endpoints."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        transport: Optional[AsyncTransport] = None,
    ):
        if not api_key:
            raise NoApiKeyError()
        self.api_key = api_key
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self._transport = transport or HttpxTransport(self.base_url)
        self._owns_transport = transport is None
        self._headers = {"X-API-Key": self.api_key, "User-Agent": USER_AGENT}

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def __aenter__(self) -> "ScreenshotsClient":
        return self

    async def __aexit__(self, *_) -> None:
        await self.aclose()

    async def screenshot(self, request: ScreenshotRequest) -> bytes:
        response = await self._send("POST", "/v1/screenshots", request.to_payload())
        return response.content

    async def create_job(self, request: ScreenshotRequest) -> Job:
        body = await self._json("POST", "/v1/screenshots/async", request.to_payload())
        return self._parse(Job, body)

    async def get_job(self, job_id: str) -> Job:
        body = await self._json("GET", f"/v1/screenshots/jobs/{job_id}")
        return self._parse(Job, body)

    async def cancel_job(self, job_id: str) -> Job:
        body = await self._json("POST", f"/v1/screenshots/jobs/{job_id}/cancel")
        return self._parse(Job, body)

    async def list_jobs(self) -> List[Job]:
        body = await self._json("GET", "/v1/screenshots/jobs")
        items = body.get("jobs") if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise ApiError("Invalid job list from API")
        return [self._parse(Job, item) for item in items]

    async def get_job_result(self, job_id: str) -> bytes:
        response = await self._send("GET", f"/v1/screenshots/jobs/{job_id}/result")
        return response.content

    async def create_bulk_job(self, request: BulkRequest) -> BulkJob:
        body = await self._json("POST", "/v1/screenshots/bulk", request.to_payload())
        return self._parse(BulkJob, body)

    async def get_bulk_job(self, bulk_id: str) -> BulkJob:
        body = await self._json("GET", f"/v1/screenshots/bulk/{bulk_id}")
        return self._parse(BulkJob, body)

    async def compose(self, request: ComposeRequest) -> ComposeResult:
        body = await self._json("POST", "/v1/screenshots/compose", request.to_payload())
        return self._parse(ComposeResult, body)

    async def list_schedules(self) -> List[Schedule]:
        body = await self._json("GET", "/v1/schedules")
        items = body.get("schedules") if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise ApiError("Invalid schedule list from API")
        return [self._parse(Schedule, item) for item in items]

    async def create_schedule(self, request: ScheduleRequest) -> Schedule:
        body = await self._json("POST", "/v1/schedules", request.to_payload())
        return self._parse(Schedule, body)

    async def get_schedule(self, schedule_id: str) -> Schedule:
        body = await self._json("GET", f"/v1/schedules/{schedule_id}")
        return self._parse(Schedule, body)

    async def update_schedule(self, schedule_id: str, update: ScheduleUpdate) -> Schedule:
        body = await self._json("PATCH", f"/v1/schedules/{schedule_id}", update.to_payload())
        return self._parse(Schedule, body)

    async def delete_schedule(self, schedule_id: str) -> None:
        await self._send("DELETE", f"/v1/schedules/{schedule_id}")

    async def schedule_action(self, schedule_id: str, action: str) -> Schedule:
        """POST one of ``pause``, ``resume`` or ``trigger`` to a schedule."""
        if action not in SCHEDULE_ACTIONS:
            raise ValueError(f"unknown schedule action: {action}")
        body = await self._json("POST", f"/v1/schedules/{schedule_id}/{action}")
        return self._parse(Schedule, body)

    async def schedule_history(self, schedule_id: str, limit: Optional[int] = None) -> ScheduleHistory:
        query = f"?limit={limit}" if limit else ""
        body = await self._json("GET", f"/v1/schedules/{schedule_id}/history{query}")
        return self._parse(ScheduleHistory, body)

    async def get_usage(self) -> UsageReport:
        body = await self._json("GET", "/v1/usage")
        return self._parse(UsageReport, body)

    async def get_quota(self) -> QuotaStatus:
        body = await self._json("GET", "/v1/usage/quota")
        return self._parse(QuotaStatus, body)

    async def _json(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._send(method, path, payload)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Invalid JSON from API", status=response.status_code) from exc

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        attempts = 0
        last_error: Optional[Exception] = None
        while attempts < self.max_attempts:
            try:
                response = await self._transport.request(
                    method,
                    path,
                    json=payload,
                    headers=self._headers,
                    timeout=self.timeout,
                )
            except httpx.RequestError as exc:
                logger.debug("%s %s failed on attempt %d: %s", method, path, attempts + 1, exc)
                last_error = exc
                await self._maybe_wait(attempts)
                attempts += 1
                continue

            if response.status_code in RETRYABLE_STATUS:
                logger.debug("%s %s returned %d on attempt %d", method, path, response.status_code, attempts + 1)
                last_error = classify_response(response)
                await self._maybe_wait(attempts)
                attempts += 1
                continue

            if response.is_error:
                raise classify_response(response)

            return response

        if isinstance(last_error, ApiError):
            raise last_error
        if isinstance(last_error, httpx.RequestError):
            raise NetworkError(
                str(last_error) or type(last_error).__name__,
                is_timeout=isinstance(last_error, httpx.TimeoutException),
                is_connect=isinstance(last_error, httpx.ConnectError),
            ) from last_error
        raise ApiError(f"Request to {path} failed")

    async def _maybe_wait(self, attempt: int) -> None:
        if attempt >= self.max_attempts - 1:
            return
        delay = self.backoff_base * (2 ** attempt)
        jitter = random.uniform(0, 0.3)
        await asyncio.sleep(delay + jitter)

    @staticmethod
    def _parse(model: Any, body: Any) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise ApiError(f"Unexpected response from API: {exc.error_count()} invalid field(s)") from exc
