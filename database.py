"""Supabase client setup."""
from typing import Optional

from supabase import create_client, Client

import config

# Created on first use so importing the app never opens a connection
_supabase_admin: Optional[Client] = None


def get_supabase_admin() -> Client:
    """Get Supabase admin client instance (service key)."""
    global _supabase_admin
    if _supabase_admin is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        _supabase_admin = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)
    return _supabase_admin
