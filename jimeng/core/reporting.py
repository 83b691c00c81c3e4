"""Failure reporting interface used by the request and gate layers.

Architectural role:
    The client reports failures through `ErrorReporter` and never ships
    telemetry itself. Hosts may plug in their own reporter; the default writes
    structured records to the standard `logging` tree.

Side effects:
    `LoggingErrorReporter` emits one `ERROR` record per report.
"""

import logging
from typing import Any, Protocol


logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    """Minimal interface for reporting a failure with context."""

    def report(self, error: BaseException, msg: str, **context: Any) -> None:
        """Record one failure."""
        ...


class LoggingErrorReporter:
    """Report failures as structured log records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(self, error: BaseException, msg: str, **context: Any) -> None:
        self._log.error(
            "%s: %s",
            msg,
            error,
            extra={"error_type": type(error).__name__, "context": context},
        )
