from supabase import create_client, Client
from gradebook.core.config import settings
from typing import Optional

# Global client instance (lazy initialization)
_supabase_admin_client: Optional[Client] = None


def get_supabase_admin_client() -> Client:
    """Create a Supabase client with the service role key"""
    if settings is None:
        raise RuntimeError(
            "Settings not initialized. Ensure environment variables are set before using Supabase clients."
        )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)


def _ensure_supabase_admin() -> Client:
    """Lazy initialization helper for supabase admin client"""
    global _supabase_admin_client
    if _supabase_admin_client is None:
        _supabase_admin_client = get_supabase_admin_client()
    return _supabase_admin_client


def get_db() -> Client:
    """FastAPI dependency returning the store client.

    Announcements and the maintenance singleton are managed server-side only,
    so every request uses the service role client. Tests override this
    dependency with an in-memory store.
    """
    return _ensure_supabase_admin()
