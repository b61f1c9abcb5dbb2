"""Tests for media models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.models.media_models import (
    MediaItem,
    MediaKind,
    MediaPage,
    PageRequest,
    SortDirection,
    SortField,
)


class TestMediaKind:
    def test_closed_set(self):
        assert {k.value for k in MediaKind} == {"IMAGE", "VIDEO"}

    def test_unknown_value_is_rejected(self):
        with pytest.raises(ValueError):
            MediaKind("AUDIO")


class TestMediaItem:
    """Test MediaItem validation and identity handling."""

    def test_new_item_has_no_id_and_utc_timestamp(self):
        before = datetime.now(timezone.utc)
        item = MediaItem(
            original_url="https://example.com",
            media_url="https://example.com/a.png",
            kind=MediaKind.IMAGE,
        )
        assert item.id is None
        assert item.created_at.tzinfo is not None
        assert before <= item.created_at <= datetime.now(timezone.utc)

    def test_with_id_returns_copy(self):
        item = MediaItem(
            original_url="https://example.com",
            media_url="https://example.com/a.png",
            kind=MediaKind.IMAGE,
        )
        stored = item.with_id(7)

        assert stored.id == 7
        assert item.id is None
        assert stored.created_at == item.created_at

    def test_with_id_refuses_reassignment(self):
        stored = MediaItem(
            id=1,
            original_url="https://example.com",
            media_url="https://example.com/a.png",
            kind=MediaKind.IMAGE,
        )
        with pytest.raises(ValueError, match="already has id"):
            stored.with_id(2)

    def test_item_is_immutable(self):
        item = MediaItem(
            original_url="https://example.com",
            media_url="https://example.com/a.png",
            kind=MediaKind.VIDEO,
        )
        with pytest.raises(ValidationError):
            item.media_url = "https://elsewhere.test/b.png"

    @pytest.mark.parametrize("media_url", ["", "ftp://x/a.png", "/a.png"])
    def test_media_url_must_start_with_http(self, media_url):
        with pytest.raises(ValidationError):
            MediaItem(original_url="https://example.com", media_url=media_url, kind=MediaKind.IMAGE)

    def test_media_url_length_is_bounded(self):
        with pytest.raises(ValidationError):
            MediaItem(
                original_url="https://example.com",
                media_url="https://example.com/" + "a" * 2048,
                kind=MediaKind.IMAGE,
            )

    def test_original_url_required(self):
        with pytest.raises(ValidationError):
            MediaItem(original_url="", media_url="https://example.com/a.png", kind=MediaKind.IMAGE)

    def test_kind_rejects_free_form_strings(self):
        with pytest.raises(ValidationError):
            MediaItem(original_url="https://example.com", media_url="https://x/a.png", kind="GIF")

    def test_json_uses_camel_case_and_type(self):
        item = MediaItem(
            id=3,
            original_url="https://example.com",
            media_url="https://example.com/a.png",
            kind=MediaKind.IMAGE,
        )
        data = item.model_dump(mode="json", by_alias=True)

        assert data["id"] == 3
        assert data["originalUrl"] == "https://example.com"
        assert data["mediaUrl"] == "https://example.com/a.png"
        assert data["type"] == "IMAGE"
        assert "createdAt" in data

    def test_validates_database_rows(self):
        row = {
            "id": 12,
            "original_url": "https://example.com",
            "media_url": "https://example.com/a.png",
            "kind": "VIDEO",
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        item = MediaItem.model_validate(row)

        assert item.id == 12
        assert item.kind is MediaKind.VIDEO
        assert item.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestPageRequest:
    def test_defaults(self):
        page = PageRequest()
        assert page.page == 0
        assert page.size == 20
        assert page.sort is SortField.ID
        assert page.direction is SortDirection.DESC
        assert page.descending is True

    def test_offset(self):
        assert PageRequest(page=3, size=25).offset == 75

    @pytest.mark.parametrize("kwargs", [{"page": -1}, {"size": 0}, {"size": 101}])
    def test_bounds(self, kwargs):
        with pytest.raises(ValidationError):
            PageRequest(**kwargs)


class TestMediaPage:
    def test_total_pages_rounds_up(self):
        page = MediaPage.build([], total=41, request=PageRequest(size=20))
        assert page.total_pages == 3
        assert page.total_elements == 41

    def test_empty_page(self):
        page = MediaPage.empty(PageRequest(page=2, size=10))
        assert page.content == []
        assert page.total_elements == 0
        assert page.total_pages == 0
        assert page.number == 2

    def test_json_aliases(self):
        data = MediaPage.empty(PageRequest()).model_dump(by_alias=True)
        assert set(data) == {"content", "totalElements", "totalPages", "number", "size"}
