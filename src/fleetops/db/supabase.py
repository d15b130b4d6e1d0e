"""Supabase client for Python backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - uploads and inserts may still fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Usage in the POD backend:
#
# client = get_supabase_client()
#
# # Upload a photo to the POD bucket
# client.storage.from_("booking-pods").upload(
#     path="1234/photo_1700000000000_0.jpg",
#     file=jpeg_bytes,
#     file_options={"content-type": "image/jpeg", "upsert": "false"},
# )
#
# # Insert the POD record
# client.table("biz_booking_pods").insert({"booking_id": 1234, ...}).execute()
