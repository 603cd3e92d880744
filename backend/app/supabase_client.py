"""
Supabase client configuration.

Provides two clients:
1. get_supabase_client(access_token) - for API requests (RLS applies)
2. get_service_client() - for the sync engine and Celery workers (bypasses RLS)
"""

from functools import lru_cache

from supabase import create_client, Client

from app.core.config import get_settings
from app.exceptions import ConfigurationError


def get_supabase_client(access_token: str | None = None) -> Client:
    """
    Get a Supabase client.

    Args:
        access_token: User's JWT (optional)

    Returns:
        Supabase Client instance

    Usage:
        - With access_token: for API requests (RLS applies)
        - Without token: uses anon key
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ConfigurationError("Supabase", "URL and anon key")

    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    if access_token:
        client.postgrest.auth(access_token)
    return client


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """
    Get Service Role client (bypasses RLS).

    Sync jobs are written across users, so the job store and the background
    work units use this client. One instance per process.
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ConfigurationError("Supabase", "URL and service role key")
    return create_client(settings.supabase_url, settings.supabase_service_role_key)
