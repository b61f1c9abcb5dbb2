"""Filtered, paginated reads of stored media."""

from typing import Iterable

import logfire

from src.constants import DEFAULT_PAGE_SIZE
from src.db.media_repository import MediaRepository
from src.models.media_models import (
    MediaKind,
    MediaPage,
    PageRequest,
    SortDirection,
    SortField,
)


class InvalidQueryError(ValueError):
    """Raised when a query parameter cannot be interpreted."""

    pass


# Accept both the stored column names and the camelCase names used in JSON
_SORT_ALIASES = {
    "id": SortField.ID,
    "created_at": SortField.CREATED_AT,
    "createdat": SortField.CREATED_AT,
    "original_url": SortField.ORIGINAL_URL,
    "originalurl": SortField.ORIGINAL_URL,
    "media_url": SortField.MEDIA_URL,
    "mediaurl": SortField.MEDIA_URL,
    "kind": SortField.KIND,
    "type": SortField.KIND,
}


def parse_kind(value: str | None) -> MediaKind | None:
    """Parse a ``type`` filter; blank means no filter."""
    if value is None or not value.strip():
        return None
    try:
        return MediaKind(value.strip().upper())
    except ValueError:
        allowed = ", ".join(k.value for k in MediaKind)
        raise InvalidQueryError(
            f"Unknown media type {value!r} (expected one of: {allowed})"
        ) from None


def parse_sort(values: str | Iterable[str] | None) -> tuple[SortField, SortDirection]:
    """Parse a ``field,direction`` sort parameter such as ``id,desc`` or ``createdAt``.

    When several ``sort`` values are given only the first is used. A missing
    direction defaults to descending.
    """
    if isinstance(values, str):
        values = [values]
    raw = next((v for v in values or [] if v and v.strip()), None)
    if raw is None:
        return SortField.ID, SortDirection.DESC

    field_name, _, direction = raw.partition(",")
    field = _SORT_ALIASES.get(field_name.strip().lower())
    if field is None:
        raise InvalidQueryError(f"Cannot sort by {field_name.strip()!r}")

    direction = direction.strip().lower() or SortDirection.DESC.value
    try:
        return field, SortDirection(direction)
    except ValueError:
        raise InvalidQueryError(
            f"Sort direction must be asc or desc, not {direction!r}"
        ) from None


class MediaQueryService:
    """Translate optional kind/search filters into repository reads.

    Precedence:
    1. kind and non-empty search: kind match AND original_url contains search
    2. kind only: kind match
    3. otherwise: everything (a search without a kind is ignored)

    Pagination passes through untouched. An empty result is a normal page.
    """

    def __init__(
        self,
        repository: MediaRepository,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._repository = repository
        self._default_page_size = default_page_size

    def page_request(
        self,
        page: int | None = None,
        size: int | None = None,
        sort: str | Iterable[str] | None = None,
    ) -> PageRequest:
        """Build a PageRequest, filling gaps with the defaults (id desc)."""
        field, direction = parse_sort(sort)
        return PageRequest(
            page=page if page is not None else 0,
            size=size if size is not None else self._default_page_size,
            sort=field,
            direction=direction,
        )

    def query(
        self,
        kind: MediaKind | None = None,
        search: str | None = None,
        page: PageRequest | None = None,
    ) -> MediaPage:
        page = page or self.page_request()

        if kind is not None and search:
            result = self._repository.find_by_kind_and_original_url_containing(
                kind, search, page
            )
        elif kind is not None:
            result = self._repository.find_by_kind(kind, page)
        else:
            result = self._repository.find_all(page)

        logfire.debug(
            "Media query served",
            kind=kind.value if kind else None,
            search=search,
            page=page.page,
            size=page.size,
            total_elements=result.total_elements,
        )
        return result
