"""Supabase client initialization."""

from supabase import create_client, Client

from src.config import Settings, get_settings


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Get Supabase client instance."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("Supabase is not configured (SUPABASE_URL / SUPABASE_SERVICE_KEY)")
    return create_client(settings.supabase_url, settings.supabase_service_key)
