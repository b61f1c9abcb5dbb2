"""Fan a URL batch out to concurrent scrape workers."""

from functools import partial
from typing import Sequence

import logfire

from src.services.scrape_worker import ScrapeWorker
from src.services.task_executor import ScrapeTaskExecutor


class EmptyUrlBatchError(ValueError):
    """Raised when a scrape batch is missing or empty."""

    pass


class ScrapeCoordinator:
    """Schedule one independent worker per submitted URL.

    ``submit`` returns as soon as the tasks exist; it never waits for a fetch.
    Duplicates are scheduled as many times as they appear and completion
    order across URLs is unspecified. Per-URL failures stay inside the
    worker and are never visible here.

    Example:
        >>> executor = ScrapeTaskExecutor()
        >>> coordinator = ScrapeCoordinator(executor, ScrapeWorker(repository))
        >>> coordinator.submit(["https://example.com"])
        1
    """

    def __init__(self, executor: ScrapeTaskExecutor, worker: ScrapeWorker):
        self._executor = executor
        self._worker = worker

    def submit(self, urls: Sequence[str] | None) -> int:
        """Schedule a scrape for every URL in the batch.

        Args:
            urls: Page URLs to scrape

        Returns:
            Number of tasks scheduled (equal to ``len(urls)``)

        Raises:
            EmptyUrlBatchError: If ``urls`` is None or empty
            TypeError: If ``urls`` is a bare string instead of a list
            ExecutorShutdownError: If the executor is shutting down
        """
        if isinstance(urls, str):
            raise TypeError("urls must be a list of URL strings, not a single string")
        if not urls:
            raise EmptyUrlBatchError("URL list must not be empty")

        batch = list(urls)
        for url in batch:
            self._executor.spawn(partial(self._worker.run, url), name=f"scrape:{url}")

        logfire.info(
            "Scrape batch accepted",
            url_count=len(batch),
            pending_tasks=self._executor.pending_count,
        )
        return len(batch)
