"""Single-flight concurrency gate for image-generation operations.

Architectural role:
    Guarantees that at most one generation-related operation body executes at
    any instant inside the process. `image.service` owns exactly one gate and
    wraps every submit/wait operation with it.

Policies:
    - `reject`: a second operation fails immediately with `ConcurrencyBusy`.
    - `queue`: a second operation waits for the in-flight one; waiters run in
      FIFO order (the underlying `asyncio.Lock` is fair).

Release guarantees:
    The token is released on every exit path of the guarded body: normal
    return, raised error, polling timeout, and task cancellation.

Concurrency model:
    Cooperative `asyncio` scheduling on one event loop. The gate is the only
    shared mutable state in the client core; it must be created and used on
    the same loop.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, TypeVar

from jimeng.core.errors import ConcurrencyBusy
from jimeng.core.reporting import ErrorReporter, LoggingErrorReporter


logger = logging.getLogger(__name__)

POLICY_REJECT = "reject"
POLICY_QUEUE = "queue"
POLICIES = (POLICY_REJECT, POLICY_QUEUE)

T = TypeVar("T")


class ConcurrencyGate:
    """Mutual exclusion for guarded operations with a configurable policy."""

    def __init__(
        self,
        policy: str = POLICY_REJECT,
        reporter: ErrorReporter | None = None,
    ) -> None:
        """Create a gate.

        Args:
            policy: `reject` or `queue`.
            reporter: Failure reporter for guarded bodies that raise.

        Raises:
            ValueError: For unknown policy names.
        """
        if policy not in POLICIES:
            raise ValueError(f"Unknown concurrency policy: {policy!r} (expected one of {POLICIES})")
        self.policy = policy
        self._lock = asyncio.Lock()
        self._reporter = reporter or LoggingErrorReporter()

    @property
    def busy(self) -> bool:
        """Whether a guarded operation currently holds the token."""
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self):
        """Acquire the token for the duration of the `async with` block.

        Raises:
            ConcurrencyBusy: Under `reject` when the token is already held.
        """
        if self.policy == POLICY_REJECT and self._lock.locked():
            error = ConcurrencyBusy()
            logger.warning("Concurrency gate rejected operation: %s", error)
            raise error

        await self._lock.acquire()
        started = time.monotonic()
        logger.info("Guarded operation started (policy=%s)", self.policy)
        try:
            yield self
        except BaseException as exc:
            duration_ms = (time.monotonic() - started) * 1000
            if isinstance(exc, Exception):
                self._reporter.report(
                    exc,
                    "Guarded operation failed",
                    duration_ms=round(duration_ms),
                )
            raise
        else:
            duration_ms = (time.monotonic() - started) * 1000
            logger.info("Guarded operation succeeded in %dms", duration_ms)
        finally:
            self._lock.release()
            logger.info("Concurrency token released")

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute `operation()` while holding the token.

        Args:
            operation: Zero-argument coroutine function.

        Returns:
            The operation's result, unchanged.
        """
        async with self.hold():
            return await operation()

    def __repr__(self) -> str:
        return f"ConcurrencyGate(policy={self.policy!r}, busy={self.busy})"
