"""
Write scheduler - fire-and-forget database writes, ordered per account.

Account code hands the scheduler a zero-argument coroutine function together
with the account id it belongs to. The scheduler guarantees:

  - Per-account ordering: tasks for the same account id run one at a time,
    strictly in submission order. Two sequential writes on one account are
    never applied out of order.
  - No cross-account ordering: each account has its own worker task, so a
    slow write on one account never delays another.
  - At-least-once for transient failures: a task that fails with a
    retryable error (lost connection, locked database, timeout) is retried
    with exponential backoff until it succeeds, or until `max_attempts` is
    exhausted when one is configured.

Any other failure (a unique-email collision, a validation error) would fail
the same way on every attempt, so the task is logged and dropped at once and
the account's next task runs.

Callers cannot await or cancel an individual write. `drain()` and `close()`
exist for shutdown and tests.

Workers are created lazily on the first enqueue for an account and exit as
soon as that account's queue is empty, so idle accounts cost nothing.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from gameaccount.config import settings
from gameaccount.exceptions import DatabaseError, NotInitializedError, NullReferenceError

logger = logging.getLogger(__name__)

WriteTask = Callable[[], Awaitable[None]]

RETRYABLE_EXCEPTIONS = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    """True when retrying the failed write may succeed."""
    if isinstance(exc, DatabaseError):
        exc = exc.__cause__
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


class WriteScheduler:
    """Per-account ordered queue of asynchronous write tasks."""

    def __init__(
        self,
        max_attempts: int | None = settings.WRITE_MAX_ATTEMPTS,
        retry_delay: float = settings.WRITE_RETRY_DELAY_SECONDS,
        max_retry_delay: float = settings.WRITE_RETRY_MAX_DELAY_SECONDS,
        retryable: Callable[[BaseException], bool] = is_transient,
    ) -> None:
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._retryable = retryable
        self._queues: dict[int, deque[WriteTask]] = {}
        self._workers: dict[int, asyncio.Task] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, account_id: int, task: WriteTask) -> None:
        """
        Queue `task` behind every earlier task of the same account.

        Must be called from inside a running event loop.

        Raises:
            NullReferenceError: If task is None or not callable.
            NotInitializedError: If the scheduler has been closed.
        """
        if task is None or not callable(task):
            raise NullReferenceError("write task")
        if self._closed:
            raise NotInitializedError("Write scheduler is closed")

        queue = self._queues.setdefault(account_id, deque())
        queue.append(task)

        if account_id not in self._workers:
            loop = asyncio.get_running_loop()
            self._workers[account_id] = loop.create_task(
                self._run(account_id),
                name=f"account-writes-{account_id}",
            )

    def pending(self, account_id: int | None = None) -> int:
        """Number of queued tasks not yet applied (for one account, or all)."""
        if account_id is not None:
            return len(self._queues.get(account_id, ()))
        return sum(len(queue) for queue in self._queues.values())

    async def drain(self) -> None:
        """Wait until every queued task has been applied or dropped."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()))

    async def close(self) -> None:
        """Refuse new tasks, then wait for the queued ones."""
        self._closed = True
        await self.drain()

    async def _run(self, account_id: int) -> None:
        queue = self._queues[account_id]
        try:
            while queue:
                # The task stays at the head until applied so pending() counts it
                await self._apply(account_id, queue[0])
                queue.popleft()
        finally:
            self._workers.pop(account_id, None)
            if not queue:
                self._queues.pop(account_id, None)

    async def _apply(self, account_id: int, task: WriteTask) -> None:
        attempt = 0
        while True:
            attempt += 1
            try:
                await task()
                return
            except Exception as exc:
                if not self._retryable(exc):
                    logger.exception(
                        "Dropping write for account %s: non-retryable failure",
                        account_id,
                    )
                    return
                if self._max_attempts is not None and attempt >= self._max_attempts:
                    logger.exception(
                        "Dropping write for account %s after %d attempts",
                        account_id,
                        attempt,
                    )
                    return
                delay = min(self._retry_delay * (2 ** (attempt - 1)), self._max_retry_delay)
                logger.warning(
                    "Write for account %s failed (attempt %d): %s. Retrying in %.2fs",
                    account_id,
                    attempt,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
