"""Typed failures raised by the Jimeng client.

Error taxonomy:
    - `SigningError`: invalid credential input at signer construction.
    - `ConfigurationError`: invalid runtime settings (durations, policy).
    - `NetworkError`: transport failure; never retried by the client.
    - `HttpError`: non-2xx response; `retryable` is advisory (429/500).
    - `ApiError`: 2xx response whose envelope `code` reports a failure.
    - `TaskFailed`: terminal server status other than `done`.
    - `TaskTimeout`: local deadline exceeded while polling.
    - `ConcurrencyBusy`: guarded operation rejected while another is running.
    - `InvalidRequestError`: request parameters rejected before dispatch.

Propagation policy:
    All errors surface to the immediate caller. Nothing in the client layer
    converts a failure into an empty or partial success.
"""

RETRYABLE_STATUS_CODES = frozenset({429, 500})


class JimengError(Exception):
    """Base class for every failure raised by this package."""


class SigningError(JimengError):
    """Credentials cannot produce a valid signature."""


class ConfigurationError(JimengError):
    """Runtime settings are malformed or out of range."""


class NetworkError(JimengError):
    """The HTTP transport failed before a response was received."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class HttpError(JimengError):
    """The remote API answered with a non-2xx status.

    Attributes:
        status: HTTP status code.
        body: Raw response body text.
        retryable: Advisory flag for callers that implement a retry policy.
            The client itself never retries.
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"API request failed with status {status}: {body}")
        self.status = status
        self.body = body
        self.retryable = status in RETRYABLE_STATUS_CODES


class ApiError(JimengError):
    """The response envelope carried a non-success business code."""

    def __init__(self, code, message: str = "", request_id: str = "") -> None:
        super().__init__(f"API returned code {code}: {message}")
        self.code = code
        self.message = message
        self.request_id = request_id


class TaskFailed(JimengError):
    """Polling observed a terminal status other than `done`."""

    def __init__(self, status: str, task_id: str | None = None) -> None:
        super().__init__(f"Task {task_id or '?'} ended with status: {status}")
        self.status = status
        self.task_id = task_id


class TaskTimeout(JimengError):
    """The polling deadline elapsed before a terminal status was reported."""

    def __init__(self, task_id: str, max_wait_time: float) -> None:
        super().__init__(
            f"Task {task_id} did not finish within {max_wait_time:g}s"
        )
        self.task_id = task_id
        self.max_wait_time = max_wait_time


class ConcurrencyBusy(JimengError):
    """Another image-generation operation is already in flight."""

    def __init__(self, message: str = "Another image generation task is in progress, try again later") -> None:
        super().__init__(message)


class InvalidRequestError(JimengError, ValueError):
    """Request parameters failed local validation."""
