"""Supabase client singleton for the hosted document store.

Every collection in ``db.COLLECTIONS`` maps to a table with the columns
``id text primary key, user_id text, data jsonb, created_at timestamptz
default now(), updated_at timestamptz``.
"""

from typing import Optional
import os
from supabase import create_client, Client

_supabase: Optional[Client] = None


def get_supabase() -> Client:
    """Get or create the Supabase client.

    Requires SUPABASE_URL and SUPABASE_SERVICE_KEY (service role key, the
    backend writes on behalf of every user).

    Raises:
        ValueError: If either variable is missing
    """
    global _supabase

    if _supabase is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must both be set to use the hosted store"
            )

        _supabase = create_client(url, key)
        print(f"[Supabase] Connected to {url}")

    return _supabase
