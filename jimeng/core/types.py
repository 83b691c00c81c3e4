"""Wire data contracts for submit/query responses.

Architectural role:
    Parses the JSON envelopes returned by the visual API into small typed
    records consumed by `image.tasks` and `image.service`.

Envelope shape:
    `{code, message, request_id, status, time_elapsed, data}` where `data` is
    `{task_id}` for submissions and `{status, image_urls, binary_data_base64}`
    for queries.

Determinism:
    Pure structural conversion. The raw payload is kept on every record so
    adapters can return it unchanged.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


SUCCESS_CODE = 10000


class TaskStatus(str, Enum):
    """Remote task states reported by the query action."""

    IN_QUEUE = "in_queue"
    GENERATING = "generating"
    DONE = "done"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


TERMINAL_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.NOT_FOUND, TaskStatus.EXPIRED})

STATUS_LABELS = {
    TaskStatus.IN_QUEUE: "Task submitted, waiting in queue",
    TaskStatus.GENERATING: "Task is generating",
    TaskStatus.DONE: "Task completed",
    TaskStatus.NOT_FOUND: "Task not found",
    TaskStatus.EXPIRED: "Task expired",
}


def describe_status(status: str | None) -> str:
    """Return a human-readable label, tolerating unknown status strings."""
    try:
        return TaskStatus(status).label
    except ValueError:
        return f"Unknown status: {status}"


@dataclass(frozen=True)
class Task:
    """Snapshot of one remote task as reported by a query response."""

    task_id: str
    status: str
    image_urls: tuple[str, ...] = ()
    binary_payloads: tuple[str, ...] = ()

    @property
    def is_terminal(self) -> bool:
        try:
            return TaskStatus(self.status).is_terminal
        except ValueError:
            return False


@dataclass(frozen=True)
class ApiEnvelope:
    """Common response fields shared by submit and query calls."""

    code: Any = None
    message: str = ""
    request_id: str = ""
    status: Any = None
    time_elapsed: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def data(self) -> dict[str, Any]:
        data = self.raw.get("data")
        return data if isinstance(data, dict) else {}

    @property
    def is_success(self) -> bool:
        return self.code is None or str(self.code) == str(SUCCESS_CODE)

    @classmethod
    def _fields(cls, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "code": payload.get("code"),
            "message": str(payload.get("message") or ""),
            "request_id": str(payload.get("request_id") or ""),
            "status": payload.get("status"),
            "time_elapsed": str(payload.get("time_elapsed") or ""),
            "raw": payload,
        }


@dataclass(frozen=True)
class SubmitResponse(ApiEnvelope):
    """Envelope returned by the submit action."""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SubmitResponse":
        return cls(**cls._fields(payload))

    @property
    def task_id(self) -> str:
        return str(self.data.get("task_id") or "")


@dataclass(frozen=True)
class QueryResponse(ApiEnvelope):
    """Envelope returned by the query action."""

    task_id: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any], task_id: str = "") -> "QueryResponse":
        return cls(task_id=task_id, **cls._fields(payload))

    @property
    def task_status(self) -> str:
        return str(self.data.get("status") or "")

    @property
    def image_urls(self) -> list[str]:
        return list(self.data.get("image_urls") or [])

    @property
    def binary_data_base64(self) -> list[str]:
        return list(self.data.get("binary_data_base64") or [])

    def to_task(self) -> Task:
        return Task(
            task_id=self.task_id,
            status=self.task_status,
            image_urls=tuple(self.image_urls),
            binary_payloads=tuple(self.binary_data_base64),
        )
