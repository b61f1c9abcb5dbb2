"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Infrastructure: respx_mock, mock_logfire, mock_settings, test_client
2. Storage: memory_repository, mock_supabase_client
3. Model samples: sample_media_items, sample_page
4. Pipeline doubles: stub_fetcher, failing_repository
"""

import os
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock

import pytest

import logfire
import respx

from src.db.media_repository import InMemoryMediaRepository
from src.models.media_models import MediaItem, MediaKind
from src.services.page_fetcher import FetchResult, PageContent

# Logfire is never configured in tests; keep it quiet
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

# Modules that hold a module-level reference to logfire
_LOGFIRE_MODULES = (
    "src.main",
    "src.logging_config",
    "src.db.media_repository",
    "src.db.query_executor",
    "src.middleware.request_timing",
    "src.services.page_fetcher",
    "src.services.media_extractor",
    "src.services.scrape_worker",
    "src.services.scrape_coordinator",
    "src.services.task_executor",
    "src.services.query_service",
)


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Returns the mock so tests can assert on info/warning/error calls.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield MagicMock()

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.debug = Mock()
    mock_logfire_module.warning = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    for module in _LOGFIRE_MODULES:
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings for the in-memory backend with no external services."""
    from src.config import Settings

    for key in ("STORAGE_BACKEND", "SUPABASE_URL", "SUPABASE_SERVICE_KEY", "SENTRY_DSN"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(
        _env_file=None,
        env="local",
        storage_backend="memory",
        scraper_timeout_seconds=2.0,
        graceful_shutdown_timeout_seconds=1.0,
        logfire_token=None,
        sentry_dsn=None,
    )

    monkeypatch.setattr("src.config.get_settings", lambda: settings)
    # Patch where get_settings is imported so the lifespan sees the mock
    monkeypatch.setattr("src.main.get_settings", lambda: settings)
    monkeypatch.setattr("src.logging_config.get_settings", lambda: settings)
    return settings


@pytest.fixture
def test_client(mock_settings, mock_logfire):
    """FastAPI TestClient with the lifespan running (services on app.state)."""
    from fastapi.testclient import TestClient
    from src.main import app

    with TestClient(app) as client:
        yield client


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def memory_repository():
    """Empty in-memory media repository."""
    return InMemoryMediaRepository()


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client supporting insert and filtered select chains.

    Every builder method returns the same query mock so any chain of
    eq/like/order/range/limit ends at ``query.execute``.
    """
    client = MagicMock()
    table = MagicMock()
    query = MagicMock()

    for method in ("select", "eq", "like", "order", "range", "limit"):
        getattr(query, method).return_value = query
    table.select.return_value = query

    insert_result = MagicMock()
    insert_result.data = []
    table.insert.return_value.execute.return_value = insert_result

    select_result = MagicMock()
    select_result.data = []
    select_result.count = 0
    query.execute.return_value = select_result

    client.table.return_value = table
    client.query = query
    return client


# =============================================================================
# Model samples
# =============================================================================


@pytest.fixture
def sample_media_items():
    """Transient media items from two source pages, oldest first."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        MediaItem(
            original_url="https://example.com/gallery",
            media_url="https://example.com/a.png",
            kind=MediaKind.IMAGE,
            created_at=base,
        ),
        MediaItem(
            original_url="https://example.com/gallery",
            media_url="https://cdn.example.com/clip.mp4",
            kind=MediaKind.VIDEO,
            created_at=base + timedelta(minutes=1),
        ),
        MediaItem(
            original_url="https://other.test/news",
            media_url="https://other.test/b.jpg",
            kind=MediaKind.IMAGE,
            created_at=base + timedelta(minutes=2),
        ),
        MediaItem(
            original_url="https://other.test/news",
            media_url="https://other.test/c.jpg",
            kind=MediaKind.IMAGE,
            created_at=base + timedelta(minutes=3),
        ),
    ]


@pytest.fixture
def populated_repository(memory_repository, sample_media_items):
    """In-memory repository holding sample_media_items (ids 1..4)."""
    memory_repository.bulk_insert(sample_media_items)
    return memory_repository


@pytest.fixture
def sample_page():
    """Page with one relative image, one empty image and one video source."""
    html = """
    <html>
    <body>
        <img src="/logo.png" alt="logo">
        <img src="" alt="empty">
        <video controls>
            <source src="https://cdn.example.com/intro.mp4" type="video/mp4">
        </video>
    </body>
    </html>
    """
    return PageContent(
        url="https://example.com/page",
        final_url="https://example.com/page",
        html=html,
    )


# =============================================================================
# Pipeline doubles
# =============================================================================


class StubFetcher:
    """PageFetcher returning canned results keyed by URL."""

    def __init__(self, pages: dict[str, str] | None = None):
        self.pages = pages or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        if url not in self.pages:
            return FetchResult.failure(url, "HTTP 404")
        return FetchResult.success(
            PageContent(url=url, final_url=url, html=self.pages[url])
        )


@pytest.fixture
def stub_fetcher():
    return StubFetcher()


@pytest.fixture
def failing_repository():
    """Repository whose bulk_insert always raises."""
    repository = MagicMock(spec=InMemoryMediaRepository)
    repository.bulk_insert.side_effect = RuntimeError("database unavailable")
    return repository
