"""
Supabase client for the interview tables.

The service key bypasses row level security, so ownership is enforced by the
repository on every call.
"""

from supabase import Client, create_client

from core import config

_client: Client | None = None


def get_supabase_client() -> Client:
    global _client
    if _client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_KEY:
            raise RuntimeError("PERSISTENCE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        _client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)
    return _client
