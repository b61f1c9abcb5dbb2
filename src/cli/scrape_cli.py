"""Typer CLI: run scrape batches in-process, browse stored media, load-test the API."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent.parent
from dotenv import load_dotenv

load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio
from collections import Counter
from typing import List, Optional

import typer

from src.cli.loadtest import DEFAULT_LOADTEST_URLS, run_load_test
from src.config import get_settings
from src.db.media_repository import MediaRepository, create_media_repository
from src.logging_config import configure_stdlib_logging
from src.services.media_extractor import MediaExtractor
from src.services.page_fetcher import HttpxPageFetcher
from src.services.query_service import InvalidQueryError, MediaQueryService, parse_kind
from src.services.scrape_coordinator import EmptyUrlBatchError, ScrapeCoordinator
from src.services.scrape_worker import ScrapeOutcome, ScrapeStatus, ScrapeWorker
from src.services.task_executor import ScrapeTaskExecutor

app = typer.Typer(help="Scrape image and video URLs from web pages.")


class _CountingWorker(ScrapeWorker):
    """ScrapeWorker that tallies outcomes for the end-of-run summary."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.outcomes: Counter = Counter()
        self.media_count = 0

    async def run(self, url: str | None) -> ScrapeOutcome:
        outcome = await super().run(url)
        self.outcomes[outcome.status] += 1
        self.media_count += outcome.media_count
        return outcome


def _read_url_file(path: Path) -> List[str]:
    """One URL per line; blank lines and # comments are ignored."""
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.lstrip().startswith("#")]


async def _scrape_batch(
    urls: List[str],
    repository: MediaRepository,
    timeout: float,
    user_agent: str,
    max_concurrency: int | None,
) -> _CountingWorker:
    fetcher = HttpxPageFetcher.shared(timeout=timeout, user_agent=user_agent)
    executor = ScrapeTaskExecutor(max_concurrency=max_concurrency)
    worker = _CountingWorker(repository, fetcher=fetcher, extractor=MediaExtractor())
    try:
        ScrapeCoordinator(executor, worker).submit(urls)
        await executor.join()
    finally:
        await executor.shutdown(timeout=0)
        await fetcher.aclose()
    return worker


@app.command()
def scrape(
    urls: Optional[List[str]] = typer.Argument(None, help="Page URLs to scrape"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="File with one URL per line"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", min=1, help="Cap on in-flight pages (default: unbounded)"
    ),
):
    """Scrape pages now and wait for every URL to finish."""
    settings = get_settings()
    configure_stdlib_logging(settings)

    batch = list(urls or [])
    if file is not None:
        batch.extend(_read_url_file(file))

    repository = create_media_repository(settings)
    typer.echo(f"Scraping {len(batch)} URLs...")
    try:
        worker = asyncio.run(
            _scrape_batch(
                batch,
                repository,
                timeout=settings.scraper_timeout_seconds,
                user_agent=settings.scraper_user_agent,
                max_concurrency=concurrency or settings.max_concurrent_scrapes,
            )
        )
    except EmptyUrlBatchError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(2)

    typer.echo(f"✓ Stored {worker.media_count} media items")
    typer.echo(f"  total in storage: {repository.count()}")
    for status in ScrapeStatus:
        if worker.outcomes[status]:
            typer.echo(f"  {status.value}: {worker.outcomes[status]}")
    if settings.storage_backend == "memory":
        typer.echo(
            typer.style(
                "Note: STORAGE_BACKEND=memory, results are discarded when this command exits.",
                fg=typer.colors.YELLOW,
            )
        )


@app.command()
def media(
    type: Optional[str] = typer.Option(None, "--type", "-t", help="IMAGE or VIDEO"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Source URL substring"),
    page: int = typer.Option(0, min=0),
    size: Optional[int] = typer.Option(None, min=1),
    sort: Optional[str] = typer.Option(None, help="e.g. id,desc or createdAt,asc"),
):
    """Print one page of stored media."""
    settings = get_settings()
    configure_stdlib_logging(settings)
    service = MediaQueryService(
        create_media_repository(settings), default_page_size=settings.default_page_size
    )
    try:
        result = service.query(
            kind=parse_kind(type),
            search=search,
            page=service.page_request(page=page, size=size, sort=sort),
        )
    except InvalidQueryError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(2)

    for item in result.content:
        typer.echo(f"{item.id}\t{item.kind.value}\t{item.media_url}\t{item.original_url}")
    typer.echo(
        f"Page {result.number + 1}/{max(result.total_pages, 1)} "
        f"({result.total_elements} total)"
    )


@app.command()
def loadtest(
    base_url: str = typer.Argument("http://localhost:8000", help="Running API base URL"),
    requests: int = typer.Option(1000, "--requests", "-n", min=1),
    concurrency: int = typer.Option(100, "--concurrency", "-c", min=1),
    url: Optional[List[str]] = typer.Option(
        None, "--url", help="URL to include in each batch (repeatable)"
    ),
):
    """Hammer POST /api/scrape and report acceptance latency and failures."""
    report = asyncio.run(
        run_load_test(
            base_url,
            requests=requests,
            concurrency=concurrency,
            urls=url or DEFAULT_LOADTEST_URLS,
        )
    )

    typer.echo(f"Requests: {report.total}")
    for code, count in sorted(report.status_counts.items()):
        typer.echo(f"  HTTP {code}: {count}")
    for error, count in sorted(report.errors.items()):
        typer.echo(f"  {error}: {count}")
    typer.echo(
        f"Latency ms p50={report.percentile(50):.1f} "
        f"p95={report.percentile(95):.1f} p99={report.percentile(99):.1f}"
    )
    typer.echo(f"Failure rate: {report.failure_rate:.2%}")
    if not report.passed:
        typer.echo("✗ Load test failed (failure rate at or above 1%)", err=True)
        raise typer.Exit(1)
    typer.echo("✓ Load test passed")


if __name__ == "__main__":
    app()
