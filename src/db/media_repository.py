"""Media item storage: the bulk-insert and filtered-page-read interface.

The scrape pipeline only ever appends records (one ``bulk_insert`` per source
URL) and the query service only ever reads pages. Two backends implement the
same protocol:

- ``InMemoryMediaRepository``: process-local, lock-guarded list
- ``SupabaseMediaRepository``: ``media_items`` table via the Supabase client

Both must tolerate concurrent ``bulk_insert`` calls from many workers.
"""

from threading import Lock
from typing import Any, Callable, List, Protocol, Sequence

import logfire
from supabase import Client

from src.config import Settings
from src.constants import MEDIA_ITEMS_TABLE
from src.db.client import get_supabase_client
from src.db.query_executor import timed_query
from src.models.media_models import MediaItem, MediaKind, MediaPage, PageRequest


class PersistenceError(Exception):
    """Raised when media records cannot be written or read."""

    pass


class MediaRepository(Protocol):
    """Protocol for media storage backends."""

    def bulk_insert(self, items: Sequence[MediaItem]) -> List[MediaItem]:
        """Store records in one round-trip and return them with ids assigned."""
        ...

    def find_all(self, page: PageRequest) -> MediaPage: ...

    def find_by_kind(self, kind: MediaKind, page: PageRequest) -> MediaPage: ...

    def find_by_kind_and_original_url_containing(
        self, kind: MediaKind, substring: str, page: PageRequest
    ) -> MediaPage: ...

    def count(self) -> int: ...


# =============================================================================
# In-memory backend
# =============================================================================


class InMemoryMediaRepository:
    """
    Thread-safe in-memory media store.

    Ids start at 1 and increase monotonically across all inserts. Data lives
    only as long as the process; use the Supabase backend for durability.
    """

    def __init__(self) -> None:
        self._items: List[MediaItem] = []
        self._next_id = 1
        self._lock = Lock()

    def bulk_insert(self, items: Sequence[MediaItem]) -> List[MediaItem]:
        if not items:
            return []
        with self._lock:
            stored = []
            for item in items:
                stored.append(item.with_id(self._next_id))
                self._next_id += 1
            self._items.extend(stored)
        logfire.debug("Media items stored in memory", row_count=len(stored))
        return stored

    def find_all(self, page: PageRequest) -> MediaPage:
        return self._page(lambda item: True, page)

    def find_by_kind(self, kind: MediaKind, page: PageRequest) -> MediaPage:
        return self._page(lambda item: item.kind is kind, page)

    def find_by_kind_and_original_url_containing(
        self, kind: MediaKind, substring: str, page: PageRequest
    ) -> MediaPage:
        return self._page(
            lambda item: item.kind is kind and substring in item.original_url, page
        )

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _page(self, predicate: Callable[[MediaItem], bool], page: PageRequest) -> MediaPage:
        with self._lock:
            matches = [item for item in self._items if predicate(item)]

        field = page.sort.value

        def sort_key(item: MediaItem) -> tuple[Any, int]:
            value = getattr(item, field)
            if isinstance(value, MediaKind):
                value = value.value
            return value, item.id or 0

        matches.sort(key=sort_key, reverse=page.descending)
        window = matches[page.offset : page.offset + page.size]
        return MediaPage.build(window, len(matches), page)


# =============================================================================
# Supabase backend
# =============================================================================


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _like_pattern(substring: str) -> str:
    """Build the ``like`` filter value for a containment search.

    PostgREST rewrites every ``*`` in a like value to ``%`` and offers no
    escape for it, so a literal ``*`` is widened to the single-character
    wildcard ``_``. Callers must recheck such rows with a plain ``in`` test.
    """
    escaped = _escape_like(substring).replace("*", "_")
    return f"%{escaped}%"


def _to_row(item: MediaItem) -> dict[str, Any]:
    return {
        "original_url": item.original_url,
        "media_url": item.media_url,
        "kind": item.kind.value,
        "created_at": item.created_at.isoformat(),
    }


class SupabaseMediaRepository:
    """Media store backed by the ``media_items`` table (see migrations/)."""

    def __init__(
        self,
        client: Client | None = None,
        table: str = MEDIA_ITEMS_TABLE,
    ):
        """
        Initialize the repository.

        Args:
            client: Supabase client (created from settings when omitted)
            table: Table holding media rows
        """
        self._client = client or get_supabase_client()
        self._table = table

    def bulk_insert(self, items: Sequence[MediaItem]) -> List[MediaItem]:
        if not items:
            return []
        rows = [_to_row(item) for item in items]
        with timed_query(
            "insert_media_items",
            original_url=items[0].original_url,
            batch_size=len(rows),
        ) as stats:
            result = self._client.table(self._table).insert(rows).execute()
            if not result.data:
                raise PersistenceError(
                    f"Failed to insert {len(rows)} media items for {items[0].original_url}"
                )
            stats["row_count"] = len(result.data)
        return [MediaItem.model_validate(row) for row in result.data]

    def find_all(self, page: PageRequest) -> MediaPage:
        return self._select(page)

    def find_by_kind(self, kind: MediaKind, page: PageRequest) -> MediaPage:
        return self._select(page, kind=kind)

    def find_by_kind_and_original_url_containing(
        self, kind: MediaKind, substring: str, page: PageRequest
    ) -> MediaPage:
        return self._select(page, kind=kind, substring=substring)

    def count(self) -> int:
        with timed_query("count_media_items"):
            result = (
                self._client.table(self._table)
                .select("id", count="exact")
                .limit(1)
                .execute()
            )
        return result.count or 0

    def _select(
        self,
        page: PageRequest,
        kind: MediaKind | None = None,
        substring: str | None = None,
    ) -> MediaPage:
        with timed_query(
            "select_media_items",
            kind=kind.value if kind else None,
            search=substring,
            page=page.page,
            size=page.size,
        ) as stats:
            query = self._client.table(self._table).select("*", count="exact")
            if kind is not None:
                query = query.eq("kind", kind.value)
            if substring:
                query = query.like("original_url", _like_pattern(substring))
            query = query.order(page.sort.value, desc=page.descending)
            if page.sort.value != "id":
                query = query.order("id", desc=page.descending)

            # "*" cannot be matched literally server-side: page in Python
            if substring and "*" in substring:
                rows = [
                    row
                    for row in query.execute().data or []
                    if substring in row["original_url"]
                ]
                stats["row_count"] = len(rows)
                window = rows[page.offset : page.offset + page.size]
                items = [MediaItem.model_validate(row) for row in window]
                return MediaPage.build(items, len(rows), page)

            result = query.range(page.offset, page.offset + page.size - 1).execute()
            stats["row_count"] = len(result.data or [])

        items = [MediaItem.model_validate(row) for row in result.data or []]
        total = result.count if result.count is not None else len(items)
        return MediaPage.build(items, total, page)


def create_media_repository(settings: Settings) -> MediaRepository:
    """Build the repository selected by ``settings.storage_backend``."""
    if settings.storage_backend == "supabase":
        logfire.info("Using Supabase media repository", table=MEDIA_ITEMS_TABLE)
        return SupabaseMediaRepository(client=get_supabase_client(settings))
    logfire.info("Using in-memory media repository")
    return InMemoryMediaRepository()
