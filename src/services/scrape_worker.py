"""Fetch → extract → persist for a single URL."""

import asyncio
from dataclasses import dataclass
from enum import Enum

import logfire

from src.db.media_repository import MediaRepository
from src.services.media_extractor import MediaExtractor
from src.services.page_fetcher import HttpxPageFetcher, PageFetcher


class ScrapeStatus(str, Enum):
    PERSISTED = "persisted"
    NO_MEDIA = "no_media"
    SKIPPED = "skipped"
    FETCH_FAILED = "fetch_failed"
    PERSIST_FAILED = "persist_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScrapeOutcome:
    """What happened to one URL. Informational only; nothing acts on it."""

    url: str
    status: ScrapeStatus
    media_count: int = 0
    error: str | None = None


class ScrapeWorker:
    """Process one URL end to end and contain every failure.

    The worker never raises: fetch errors, extraction surprises and storage
    errors are logged with the URL and turned into a ``ScrapeOutcome``. Only
    cancellation propagates, so shutdown can still stop in-flight work.

    Each source URL costs at most one ``bulk_insert`` call. The repository is
    synchronous, so the insert runs in a worker thread to keep the event loop
    free for other fetches.
    """

    def __init__(
        self,
        repository: MediaRepository,
        fetcher: PageFetcher | None = None,
        extractor: MediaExtractor | None = None,
    ):
        """Initialize the worker.

        Args:
            repository: Destination for extracted media
            fetcher: Page fetcher implementation (defaults to HttpxPageFetcher)
            extractor: Media extractor (defaults to MediaExtractor)
        """
        self._repository = repository
        self._fetcher = fetcher or HttpxPageFetcher()
        self._extractor = extractor or MediaExtractor()

    async def run(self, url: str | None) -> ScrapeOutcome:
        if not url or not url.strip():
            logfire.warning("Skipping blank URL in scrape batch", url=url)
            return ScrapeOutcome(url=url or "", status=ScrapeStatus.SKIPPED)

        url = url.strip()
        try:
            result = await self._fetcher.fetch(url)
            if not result.ok:
                return ScrapeOutcome(
                    url=url,
                    status=ScrapeStatus.FETCH_FAILED,
                    error=result.error.cause if result.error else None,
                )

            items = self._extractor.extract(url, result.page)
            if not items:
                logfire.info("No media found on page", url=url)
                return ScrapeOutcome(url=url, status=ScrapeStatus.NO_MEDIA)

            try:
                stored = await asyncio.to_thread(self._repository.bulk_insert, items)
            except Exception as e:
                logfire.error(
                    "Failed to persist media",
                    url=url,
                    media_count=len(items),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return ScrapeOutcome(
                    url=url, status=ScrapeStatus.PERSIST_FAILED, error=str(e)
                )

            logfire.info("Media persisted", url=url, media_count=len(stored))
            return ScrapeOutcome(
                url=url, status=ScrapeStatus.PERSISTED, media_count=len(stored)
            )
        except Exception as e:
            logfire.error(
                "Scrape failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ScrapeOutcome(url=url, status=ScrapeStatus.FAILED, error=str(e))
