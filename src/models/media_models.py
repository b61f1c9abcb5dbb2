"""Media asset models: stored records, pagination requests and result pages."""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.constants import DEFAULT_PAGE_SIZE, MAX_MEDIA_URL_LENGTH, MAX_PAGE_SIZE


class MediaKind(str, Enum):
    """Kind of embedded asset discovered on a page."""

    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class SortField(str, Enum):
    """Columns a media page can be ordered by."""

    ID = "id"
    CREATED_AT = "created_at"
    ORIGINAL_URL = "original_url"
    MEDIA_URL = "media_url"
    KIND = "kind"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaItem(BaseModel):
    """An image or video URL discovered on a scraped page.

    Instances are built by the extractor without an ``id``; the repository
    assigns identity on insert and hands back a persisted copy. Records are
    never updated afterwards.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    id: int | None = Field(default=None, description="Assigned by storage on insert")
    original_url: str = Field(..., min_length=1, description="Page the asset was found on")
    media_url: str = Field(
        ...,
        min_length=1,
        max_length=MAX_MEDIA_URL_LENGTH,
        description="Absolute asset URL",
    )
    kind: MediaKind = Field(..., alias="type", description="IMAGE or VIDEO")
    created_at: datetime = Field(
        default_factory=_utcnow, description="Extraction time (UTC)"
    )

    @field_validator("media_url")
    @classmethod
    def _media_url_has_scheme(cls, value: str) -> str:
        if not value.startswith("http"):
            raise ValueError("media_url must start with http")
        return value

    def with_id(self, item_id: int) -> "MediaItem":
        """Return the persisted copy of this record carrying ``item_id``."""
        if self.id is not None:
            raise ValueError(f"MediaItem already has id {self.id}")
        return self.model_copy(update={"id": item_id})


class PageRequest(BaseModel):
    """Pagination and ordering for a media query (zero-based page index)."""

    page: int = Field(default=0, ge=0)
    size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort: SortField = SortField.ID
    direction: SortDirection = SortDirection.DESC

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


class MediaPage(BaseModel):
    """One page of media records plus the totals needed to browse the rest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: List[MediaItem]
    total_elements: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    number: int = Field(..., ge=0)
    size: int = Field(..., ge=1)

    @classmethod
    def build(
        cls, items: List[MediaItem], total: int, request: PageRequest
    ) -> "MediaPage":
        return cls(
            content=items,
            total_elements=total,
            total_pages=math.ceil(total / request.size),
            number=request.page,
            size=request.size,
        )

    @classmethod
    def empty(cls, request: PageRequest) -> "MediaPage":
        return cls.build([], 0, request)


class ScrapeAccepted(BaseModel):
    """Response body for an accepted scrape batch."""

    message: str
    accepted: int = Field(..., ge=1)
    pending: int = Field(..., ge=0)
