from functools import lru_cache
from supabase import AsyncClient, Client, acreate_client, create_client
from .config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """
    Shared service-role client for table queries, storage uploads and auth admin calls.
    Row access is enforced by the routers, not by RLS.
    """
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


@lru_cache
def get_supabase_anon_client() -> Client:
    """
    Anon-key client for the public auth endpoints: password sign-in, sign-up and
    password reset emails. Falls back to the service key when no anon key is set.
    """
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY)


async def get_supabase_async_client() -> AsyncClient:
    """
    Builds an async client for realtime channels. Each caller gets its own connection.
    """
    settings = get_settings()
    return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY)
