"""Database client and repository layer."""

from src.db.media_repository import (
    InMemoryMediaRepository,
    MediaRepository,
    PersistenceError,
    SupabaseMediaRepository,
    create_media_repository,
)
from src.db.query_executor import timed_query

__all__ = [
    "InMemoryMediaRepository",
    "MediaRepository",
    "PersistenceError",
    "SupabaseMediaRepository",
    "create_media_repository",
    "timed_query",
]
