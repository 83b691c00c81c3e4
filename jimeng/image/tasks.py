"""Task lifecycle: submit, then poll until a terminal state or deadline.

State machine:
    Submitted -> Polling -> Done | NotFound | Expired
    Polling -> TimedOut (local deadline)

Polling policy:
    Constant interval between queries (no exponential backoff). The first
    query runs immediately; `done` returns at once and no further query is
    issued; `not_found`/`expired` raise `TaskFailed` without sleeping.

Cancellation:
    There is no cancellation token. The deadline (`max_wait_time`) is the
    only built-in termination mechanism for a running wait.

Concurrency:
    Sleeping uses `asyncio.sleep`, a cooperative suspension point, so other
    work on the loop continues while a task is polling. Clock and sleep are
    injectable for deterministic tests.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from jimeng.core.config import DEFAULT_MAX_WAIT_TIME, DEFAULT_POLL_INTERVAL
from jimeng.core.errors import TaskFailed, TaskTimeout
from jimeng.core.types import QueryResponse, SubmitResponse, TaskStatus
from jimeng.image import constants as C
from jimeng.image.api import JimengAPI


logger = logging.getLogger(__name__)

FAILED_STATUSES = frozenset({TaskStatus.NOT_FOUND.value, TaskStatus.EXPIRED.value})


class TaskLifecycle:
    """Drive one task from submission to a terminal state."""

    def __init__(
        self,
        api: JimengAPI,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait_time: float = DEFAULT_MAX_WAIT_TIME,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api = api
        self.poll_interval = poll_interval
        self.max_wait_time = max_wait_time
        self._clock = clock
        self._sleep = sleep

    async def wait_for_completion(
        self,
        task_id: str,
        req_key: str = C.REQ_KEY_T2I,
        poll_interval: float | None = None,
        max_wait_time: float | None = None,
        return_url: bool | None = True,
        logo_info: dict[str, Any] | None = None,
    ) -> QueryResponse:
        """Poll `task_id` until it is done.

        Args:
            task_id: Remote task id.
            req_key: Service identifier used at submission.
            poll_interval: Seconds between queries (instance default if None).
            max_wait_time: Total polling budget in seconds.
            return_url: Forwarded to each query's `req_json`.
            logo_info: Watermark settings forwarded to each query.

        Returns:
            The first `QueryResponse` whose status is `done`.

        Raises:
            TaskFailed: Status `not_found` or `expired`.
            TaskTimeout: Budget exhausted before a terminal status.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        budget = self.max_wait_time if max_wait_time is None else max_wait_time

        started = self._clock()
        attempts = 0
        while self._clock() - started < budget:
            attempts += 1
            response = await self.api.query_task(
                task_id, req_key=req_key, return_url=return_url, logo_info=logo_info
            )
            status = response.task_status

            if status == TaskStatus.DONE.value:
                logger.info("Task %s done after %d queries", task_id, attempts)
                return response

            if status in FAILED_STATUSES:
                raise TaskFailed(status, task_id=task_id)

            logger.debug("Task %s status=%s, next query in %ss", task_id, status, interval)
            await self._sleep(interval)

        raise TaskTimeout(task_id, budget)

    async def submit_and_wait(
        self,
        submit: Callable[[], Awaitable[SubmitResponse]],
        req_key: str = C.REQ_KEY_T2I,
        poll_interval: float | None = None,
        max_wait_time: float | None = None,
        return_url: bool | None = True,
        logo_info: dict[str, Any] | None = None,
    ) -> QueryResponse:
        """Run `submit()` and wait on the task id it returns."""
        submitted = await submit()
        logger.info("Task submitted, task_id=%s", submitted.task_id)
        return await self.wait_for_completion(
            submitted.task_id,
            req_key=req_key,
            poll_interval=poll_interval,
            max_wait_time=max_wait_time,
            return_url=return_url,
            logo_info=logo_info,
        )
