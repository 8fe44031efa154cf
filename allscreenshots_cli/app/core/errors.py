from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from allscreenshots_cli.app.services.batch import BatchSummary


class CliError(Exception):
    """Base exception for every failure surfaced to the command line."""


class ConfigError(CliError):
    """Raised when the persisted config file cannot be read or written."""


class NoApiKeyError(CliError):
    def __init__(self) -> None:
        super().__init__("No API key found")


class InputValidationError(CliError):
    """Raised for bad user input, always before any remote call is made."""


class InvalidUrlError(InputValidationError):
    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url}")
        self.url = url


class InputFileNotFoundError(InputValidationError):
    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class FileReadError(CliError):
    pass


class FileWriteError(CliError):
    pass


class DisplayError(CliError):
    pass


class ApiError(CliError):
    """Classified error returned by the screenshot API."""

    default_code = "api_error"

    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code or self.default_code


class AuthenticationError(ApiError):
    default_code = "unauthorized"


class RateLimitError(ApiError):
    default_code = "rate_limit_exceeded"


class RequestValidationError(ApiError):
    default_code = "validation_error"


class NotFoundError(ApiError):
    default_code = "not_found"


class NetworkError(CliError):
    """Raised when the API could not be reached at all."""

    def __init__(self, message: str, *, is_timeout: bool = False, is_connect: bool = False):
        super().__init__(message)
        self.is_timeout = is_timeout
        self.is_connect = is_connect


class JobFailedError(CliError):
    def __init__(self, job_id: str, message: Optional[str] = None, code: Optional[str] = None):
        self.job_id = job_id
        self.error_message = message or "Unknown error"
        self.error_code = code
        super().__init__(f"Screenshot job failed: {self.error_message}")


class JobCancelledError(CliError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__("Screenshot job was cancelled")


class JobNotCompletedError(CliError):
    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job is not completed. Current status: {status}")


class PollTimeoutError(CliError):
    def __init__(self, job_id: str, timeout: float, last_status: Optional[str] = None):
        self.job_id = job_id
        self.timeout = timeout
        self.last_status = last_status
        super().__init__(f"Job {job_id} did not finish within {timeout:g}s (last status: {last_status or 'unknown'})")


class OperationCancelledError(CliError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Stopped waiting for job {job_id}")


class BatchFailedError(CliError):
    def __init__(self, summary: "BatchSummary"):
        self.summary = summary
        super().__init__("All screenshots failed")
