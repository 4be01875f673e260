"""Supabase client initialization."""

from functools import lru_cache

from supabase import AsyncClient, Client, acreate_client, create_client

from app.core.config import get_settings

_async_client: AsyncClient | None = None


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get Supabase client instance (cached singleton).

    Returns:
        Supabase client configured with the anonymous key

    Raises:
        RuntimeError: If client initialization fails
    """
    try:
        settings = get_settings()
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        return client
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e


async def get_async_supabase() -> AsyncClient:
    """
    Get the async Supabase client used for realtime channels (cached singleton).

    Raises:
        RuntimeError: If client initialization fails
    """
    global _async_client
    if _async_client is None:
        try:
            settings = get_settings()
            _async_client = await acreate_client(
                settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY
            )
        except Exception as e:
            raise RuntimeError(f"Failed to initialize async Supabase client: {e}") from e
    return _async_client
