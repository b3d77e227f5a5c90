"""
Supabase client shared by the storage and attempt services.
"""

import logging
from typing import Optional

from supabase import create_client, Client

from .config import Config

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the process-wide Supabase client, creating it on first use.

    Raises:
        ValueError: If SUPABASE_URL / SUPABASE_SERVICE_KEY are missing
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)
        logger.info("Supabase client created for %s", Config.SUPABASE_URL)

    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the cached client (useful for testing)"""
    global _supabase_client
    _supabase_client = None
