from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _camel(value: str) -> str:
    components = value.split("_")
    if not components:
        return value
    return components[0] + "".join(c.title() for c in components[1:])


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}

    @property
    def label(self) -> str:
        return self.value.title()


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    PDF = "pdf"


class WaitUntil(str, Enum):
    LOAD = "load"
    DOM_CONTENT_LOADED = "domcontentloaded"
    NETWORK_IDLE = "networkidle"
    COMMIT = "commit"


class BlockLevel(str, Enum):
    NONE = "none"
    LIGHT = "light"
    NORMAL = "normal"
    PRO = "pro"
    PRO_PLUS = "pro_plus"
    ULTIMATE = "ultimate"


class Viewport(_WireModel):
    width: Optional[int] = None
    height: Optional[int] = None


class ScreenshotRequest(_WireModel):
    url: str
    device: Optional[str] = None
    viewport: Optional[Viewport] = None
    format: Optional[ImageFormat] = None
    full_page: Optional[bool] = None
    quality: Optional[int] = None
    delay: Optional[int] = None
    wait_for: Optional[str] = None
    wait_until: Optional[WaitUntil] = None
    dark_mode: Optional[bool] = None
    block_ads: Optional[bool] = None
    block_cookie_banners: Optional[bool] = None
    block_level: Optional[BlockLevel] = None
    selector: Optional[str] = None
    custom_css: Optional[str] = None


class BulkUrlRequest(_WireModel):
    url: str


class BulkDefaults(_WireModel):
    device: Optional[str] = None
    format: Optional[ImageFormat] = None
    full_page: Optional[bool] = None


class BulkRequest(_WireModel):
    urls: List[BulkUrlRequest]
    defaults: Optional[BulkDefaults] = None

    @classmethod
    def for_urls(cls, urls: List[str], defaults: Optional[BulkDefaults] = None) -> "BulkRequest":
        return cls(urls=[BulkUrlRequest(url=url) for url in urls], defaults=defaults)


class Job(_WireModel):
    """Snapshot of a single async job as last reported by the API."""

    id: str
    status: JobStatus
    url: Optional[str] = None
    status_url: Optional[str] = None
    result_url: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    expires_at: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _upper_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class BulkJobItem(_WireModel):
    # status stays a raw string; terminal checks are exact matches
    id: str
    url: str
    status: str
    result_url: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class BulkJob(_WireModel):
    id: str
    status: str
    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    jobs: List[BulkJobItem] = []

    @field_validator("jobs", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class LayoutType(str, Enum):
    GRID = "grid"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    MASONRY = "masonry"
    MONDRIAN = "mondrian"
    PARTITIONING = "partitioning"
    AUTO = "auto"


class CaptureItem(_WireModel):
    url: str
    device: Optional[str] = None


class ComposeOutput(_WireModel):
    layout: Optional[LayoutType] = None
    format: Optional[ImageFormat] = None
    columns: Optional[int] = None
    spacing: Optional[int] = None
    padding: Optional[int] = None
    background: Optional[str] = None
    quality: Optional[int] = None


class ComposeRequest(_WireModel):
    captures: List[CaptureItem]
    output: Optional[ComposeOutput] = None


class ComposeResult(_WireModel):
    url: Optional[str] = None
    storage_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    render_time_ms: Optional[int] = None


class Schedule(_WireModel):
    id: str
    name: str
    url: str
    # cron expression
    schedule: str
    schedule_description: Optional[str] = None
    timezone: Optional[str] = None
    status: str = "ACTIVE"
    retention_days: Optional[int] = None
    last_executed_at: Optional[str] = None
    next_execution_at: Optional[str] = None
    execution_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    created_at: Optional[str] = None

    @field_validator("execution_count", "success_count", "failure_count", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class ScheduleRequest(_WireModel):
    name: str
    url: str
    schedule: str
    timezone: Optional[str] = None
    retention_days: Optional[int] = None
    webhook_url: Optional[str] = None


class ScheduleUpdate(_WireModel):
    name: Optional[str] = None
    url: Optional[str] = None
    schedule: Optional[str] = None
    timezone: Optional[str] = None
    retention_days: Optional[int] = None

    @property
    def empty(self) -> bool:
        return not self.to_payload()


class ScheduleExecution(_WireModel):
    id: Optional[str] = None
    executed_at: str
    status: str
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    render_time_ms: Optional[int] = None


class ScheduleHistory(_WireModel):
    total_executions: int = 0
    executions: List[ScheduleExecution] = []

    @field_validator("executions", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ScreenshotQuota(_WireModel):
    used: int = 0
    limit: int = 0
    remaining: int = 0
    percent_used: float = 0


class BandwidthQuota(_WireModel):
    used_bytes: int = 0
    limit_bytes: int = 0
    used_formatted: str = "0 B"
    limit_formatted: str = "0 B"
    percent_used: float = 0


class QuotaStatus(_WireModel):
    tier: str = "unknown"
    screenshots: ScreenshotQuota = Field(default_factory=ScreenshotQuota)
    bandwidth: BandwidthQuota = Field(default_factory=BandwidthQuota)
    period_ends: Optional[str] = None


class UsagePeriod(_WireModel):
    period_start: str = ""
    period_end: str = ""
    screenshots_count: int = 0
    bandwidth_bytes: int = 0
    bandwidth_formatted: str = "0 B"


class UsageTotals(_WireModel):
    screenshots_count: int = 0
    bandwidth_bytes: int = 0
    bandwidth_formatted: str = "0 B"


class UsageReport(_WireModel):
    tier: str = "unknown"
    current_period: UsagePeriod = Field(default_factory=UsagePeriod)
    quota: Optional[QuotaStatus] = None
    history: List[UsagePeriod] = []
    totals: Optional[UsageTotals] = None

    @field_validator("history", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True)
class WatchTemplate:
    url: str
    device: Optional[str] = None
    format: ImageFormat = ImageFormat.PNG
    full_page: bool = False

    def to_request(self) -> ScreenshotRequest:
        return ScreenshotRequest(
            url=self.url,
            device=self.device,
            format=self.format,
            full_page=True if self.full_page else None,
        )


@dataclass
class WatchSession:
    template: WatchTemplate
    interval: float
    max_captures: int = 0
    output_dir: Optional[Path] = None
    display: bool = True
    iteration: int = 0

    @property
    def bounded(self) -> bool:
        return self.max_captures > 0

    def exhausted(self) -> bool:
        return self.bounded and self.iteration >= self.max_captures


@dataclass
class CaptureOutcome:
    data: bytes
    size: int = field(init=False)
    dimensions: Optional[Tuple[int, int]] = None
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        self.size = len(self.data)
