"""Lightweight task substrate for scrape fan-out.

Every submitted URL becomes one asyncio task. Tasks spend nearly all their
time waiting on the network, so thousands can be in flight on a single event
loop without a thread per URL. An optional semaphore caps how many run their
body at once; tasks beyond the cap are still created immediately and simply
wait their turn, so submission never blocks.

The executor is built once per process (FastAPI lifespan or CLI run) and
passed to the coordinator. ``shutdown()`` drains it on the way out.
"""

import asyncio
from typing import Any, Awaitable, Callable

import logfire

from src.constants import GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS


class ExecutorShutdownError(RuntimeError):
    """Raised when work is submitted to an executor that is shutting down."""

    pass


class ScrapeTaskExecutor:
    """Track fire-and-forget asyncio tasks and drain them on shutdown."""

    def __init__(self, max_concurrency: int | None = None):
        """
        Initialize the executor.

        Args:
            max_concurrency: Maximum number of task bodies running at once.
                None means unbounded fan-out.
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._max_concurrency = max_concurrency
        self._semaphore = (
            asyncio.Semaphore(max_concurrency) if max_concurrency is not None else None
        )
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._spawned = 0

    @property
    def pending_count(self) -> int:
        """Number of tasks scheduled but not yet finished."""
        return len(self._tasks)

    @property
    def spawned_count(self) -> int:
        """Number of tasks spawned over the executor's lifetime."""
        return self._spawned

    @property
    def max_concurrency(self) -> int | None:
        return self._max_concurrency

    @property
    def is_shutting_down(self) -> bool:
        return self._closed

    def spawn(
        self,
        work: Callable[[], Awaitable[Any]],
        *,
        name: str | None = None,
    ) -> asyncio.Task:
        """
        Schedule ``work()`` as a tracked task on the running event loop.

        Returns immediately. The task's result is discarded; an exception that
        escapes ``work`` is logged and never re-raised.

        Raises:
            ExecutorShutdownError: If shutdown has begun
            RuntimeError: If called outside a running event loop
        """
        if self._closed:
            raise ExecutorShutdownError("Executor is shutting down; no new work accepted")

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(work), name=name)
        self._tasks.add(task)
        self._spawned += 1
        task.add_done_callback(self._on_done)
        return task

    async def join(self) -> None:
        """Wait until every task spawned so far (and any they spawn) finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Stop accepting work, wait up to ``timeout`` seconds, then cancel the rest."""
        self._closed = True

        if not self._tasks:
            logfire.info("No pending scrape tasks during shutdown")
            return

        logfire.info(
            "Waiting for pending scrape tasks to complete",
            task_count=len(self._tasks),
            timeout_seconds=timeout,
        )
        done, pending = await asyncio.wait(
            set(self._tasks),
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )

        if pending:
            logfire.warning(
                "Cancelling remaining scrape tasks after timeout",
                completed_count=len(done),
                cancelled_count=len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        else:
            logfire.info(
                "All scrape tasks completed before shutdown",
                completed_count=len(done),
            )

    async def _run(self, work: Callable[[], Awaitable[Any]]) -> Any:
        if self._semaphore is None:
            return await work()
        async with self._semaphore:
            return await work()

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logfire.error(
                "Scrape task crashed",
                task_name=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
            )
