"""Extract image and video asset URLs from fetched pages."""

from typing import Iterator, List
from urllib.parse import urljoin

import logfire
from bs4 import BeautifulSoup

from src.constants import MAX_MEDIA_URL_LENGTH
from src.models.media_models import MediaItem, MediaKind
from src.services.page_fetcher import PageContent
from src.services.url_validator import is_valid_media_url

# (CSS selector, kind) pairs, collected in this order
_MEDIA_SELECTORS = (
    ("img[src]", MediaKind.IMAGE),
    ("video source[src]", MediaKind.VIDEO),
)


class MediaExtractor:
    """Turn a page's markup into transient MediaItem records.

    Images come first, then video sources, each in document order. Relative
    sources are resolved against ``<base href>`` when the page declares one,
    otherwise against the page's final URL.
    """

    def extract(self, source_url: str, page: PageContent) -> List[MediaItem]:
        """Extract media records from a fetched page.

        Args:
            source_url: URL the caller asked to scrape; stored as original_url
            page: Fetched page content

        Returns:
            MediaItem list without ids, possibly empty
        """
        soup = BeautifulSoup(page.html, "html.parser")
        base_url = self._base_url(soup, page.final_url or source_url)

        items: List[MediaItem] = []
        skipped = 0
        for kind, media_url in self._candidates(soup, base_url):
            if not is_valid_media_url(media_url) or len(media_url) > MAX_MEDIA_URL_LENGTH:
                skipped += 1
                continue
            items.append(MediaItem(original_url=source_url, media_url=media_url, kind=kind))

        logfire.debug(
            "Media extracted",
            url=source_url,
            media_count=len(items),
            skipped_count=skipped,
        )
        return items

    @staticmethod
    def _candidates(soup: BeautifulSoup, base_url: str) -> Iterator[tuple[MediaKind, str]]:
        for selector, kind in _MEDIA_SELECTORS:
            for element in soup.select(selector):
                src = element.get("src")
                if isinstance(src, list):
                    src = " ".join(src)
                src = (src or "").strip()
                if not src:
                    continue
                try:
                    absolute = urljoin(base_url, src)
                except ValueError:
                    # urljoin rejects things like unbalanced IPv6 brackets
                    continue
                yield kind, absolute

    @staticmethod
    def _base_url(soup: BeautifulSoup, page_url: str) -> str:
        base = soup.find("base", href=True)
        if base is None:
            return page_url
        href = (base.get("href") or "").strip()
        if not href:
            return page_url
        try:
            return urljoin(page_url, href)
        except ValueError:
            return page_url
