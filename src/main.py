"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, scrape
from src.config import Settings, get_settings
from src.db.media_repository import MediaRepository, create_media_repository
from src.logging_config import setup_logfire
from src.middleware.request_timing import RequestTimingMiddleware
from src.services.media_extractor import MediaExtractor
from src.services.page_fetcher import HttpxPageFetcher
from src.services.query_service import MediaQueryService
from src.services.scrape_coordinator import ScrapeCoordinator
from src.services.scrape_worker import ScrapeWorker
from src.services.task_executor import ScrapeTaskExecutor

APP_VERSION = "0.1.0"


def init_services(
    app: FastAPI,
    settings: Settings,
    *,
    repository: MediaRepository | None = None,
    fetcher: HttpxPageFetcher | None = None,
) -> None:
    """
    Build the scrape pipeline and query service and attach them to app.state.

    The executor and the fetcher's connection pool are process-wide resources
    created here and released by the lifespan on shutdown.
    """
    repository = repository or create_media_repository(settings)
    fetcher = fetcher or HttpxPageFetcher.shared(
        timeout=settings.scraper_timeout_seconds,
        user_agent=settings.scraper_user_agent,
    )
    executor = ScrapeTaskExecutor(max_concurrency=settings.max_concurrent_scrapes)
    worker = ScrapeWorker(repository, fetcher=fetcher, extractor=MediaExtractor())

    app.state.repository = repository
    app.state.fetcher = fetcher
    app.state.executor = executor
    app.state.coordinator = ScrapeCoordinator(executor, worker)
    app.state.query_service = MediaQueryService(
        repository, default_page_size=settings.default_page_size
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager with graceful shutdown support."""
    # Startup
    settings = get_settings()

    # Initialize Logfire for observability
    setup_logfire(app, settings)

    # Initialize Sentry if DSN is provided
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            environment=settings.env,
            integrations=[FastApiIntegration()],
        )

    init_services(app, settings)

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        storage_backend=settings.storage_backend,
        max_concurrent_scrapes=app.state.executor.max_concurrency,
        scraper_timeout_seconds=settings.scraper_timeout_seconds,
    )

    yield

    # ==========================================================================
    # Graceful Shutdown
    # ==========================================================================
    executor: ScrapeTaskExecutor = app.state.executor
    logfire.info(
        "Application shutdown initiated",
        pending_tasks=executor.pending_count,
    )
    await executor.shutdown(timeout=settings.graceful_shutdown_timeout_seconds)
    await app.state.fetcher.aclose()
    logfire.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Media Scraper",
    description="Concurrent image and video URL scraper with paginated search",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Correlation ID + timing middleware (must be first for request tracing)
app.add_middleware(RequestTimingMiddleware)

# CORS middleware so a browser frontend on another origin can call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(scrape.router, prefix="/api", tags=["scrape"])


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Media Scraper API",
        "version": APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
