"""Single-page retrieval for the scrape pipeline.

Fetch failures are returned, not raised: a ``FetchResult`` carries either the
page content or a ``FetchError``. Workers log the error and move on, so one
bad URL never disturbs the rest of a batch.
"""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import httpx
import logfire

from src.constants import DEFAULT_USER_AGENT, HTML_CONTENT_TYPES, SCRAPE_TIMEOUT_SECONDS


class FetchError(Exception):
    """A page could not be retrieved or is not markup."""

    def __init__(self, url: str, cause: str):
        super().__init__(f"Failed to fetch {url}: {cause}")
        self.url = url
        self.cause = cause


@dataclass(frozen=True)
class PageContent:
    """Raw markup of a fetched page.

    ``final_url`` is the URL after redirects and is the base for resolving
    relative asset references.
    """

    url: str
    final_url: str
    html: str


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch: exactly one of ``page`` or ``error`` is set."""

    page: PageContent | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.page is not None

    @classmethod
    def success(cls, page: PageContent) -> "FetchResult":
        return cls(page=page)

    @classmethod
    def failure(cls, url: str, cause: str) -> "FetchResult":
        return cls(error=FetchError(url, cause))


class PageFetcher(Protocol):
    """Protocol for fetching page content."""

    async def fetch(self, url: str) -> FetchResult:
        """Fetch HTML content from URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult holding the page or the failure; never raises for
            network, status or content problems
        """
        ...


def _is_markup(content_type: str | None) -> bool:
    if not content_type:
        return True
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.startswith(HTML_CONTENT_TYPES) or media_type.endswith("+xml")


class HttpxPageFetcher:
    """Fetch pages using httpx with a browser-like identity."""

    # Default headers to mimic a real browser
    DEFAULT_HEADERS = {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(
        self,
        timeout: float = SCRAPE_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the page fetcher.

        Args:
            timeout: Connect/read timeout in seconds
            headers: Optional custom headers (defaults to browser-like headers)
            client: Optional shared client; when omitted each fetch opens and
                closes its own client
        """
        self._timeout = timeout
        self._headers = headers or self.DEFAULT_HEADERS.copy()
        self._client = client

    @classmethod
    def shared(
        cls,
        timeout: float = SCRAPE_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> "HttpxPageFetcher":
        """Build a fetcher that reuses one connection pool for every fetch.

        The caller owns the lifecycle and must ``await fetcher.aclose()``.
        """
        headers = {**cls.DEFAULT_HEADERS, "User-Agent": user_agent}
        client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            limits=httpx.Limits(max_connections=None, max_keepalive_connections=100),
        )
        return cls(timeout=timeout, headers=headers, client=client)

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page, converting every failure into a FetchResult.

        The httpx timeout bounds each connect/read step; the outer deadline
        bounds the whole exchange, so a server trickling bytes cannot hold a
        worker past ``timeout``.
        """
        try:
            async with asyncio.timeout(self._timeout):
                if self._client is not None:
                    response = await self._client.get(url)
                else:
                    async with httpx.AsyncClient(
                        timeout=self._timeout,
                        follow_redirects=True,
                        headers=self._headers,
                    ) as client:
                        response = await client.get(url)
            response.raise_for_status()
        except TimeoutError:
            return self._failed(url, f"timed out after {self._timeout}s")
        except httpx.TimeoutException as e:
            return self._failed(url, f"timed out after {self._timeout}s ({type(e).__name__})")
        except httpx.HTTPStatusError as e:
            return self._failed(url, f"HTTP {e.response.status_code}")
        except httpx.InvalidURL as e:
            return self._failed(url, f"invalid URL: {e}")
        except httpx.HTTPError as e:
            return self._failed(url, f"{type(e).__name__}: {e}")

        content_type = response.headers.get("content-type")
        if not _is_markup(content_type):
            return self._failed(url, f"unsupported content type {content_type!r}")

        try:
            html = response.text
        except (UnicodeDecodeError, LookupError) as e:
            return self._failed(url, f"undecodable body: {e}")

        logfire.info(
            "Page fetched",
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            content_length=len(html),
        )
        return FetchResult.success(
            PageContent(url=url, final_url=str(response.url), html=html)
        )

    async def aclose(self) -> None:
        """Close the shared client, if this fetcher owns one."""
        if self._client is not None:
            await self._client.aclose()

    @staticmethod
    def _failed(url: str, cause: str) -> FetchResult:
        logfire.warning("Page fetch failed", url=url, error=cause)
        return FetchResult.failure(url, cause)
