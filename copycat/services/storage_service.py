"""
StorageService - Supabase Storage operations for creatives and generated artifacts.

Artifacts (masks, rendered results) are write-once: every path carries a
millisecond timestamp and a random suffix, so concurrent attempts never
overwrite each other.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

from supabase import Client

from ..core.database import get_supabase_client

logger = logging.getLogger(__name__)


class StorageService:
    """Object store over Supabase Storage."""

    def __init__(self, supabase: Optional[Client] = None):
        self.supabase: Client = supabase or get_supabase_client()
        logger.info("StorageService initialized")

    @staticmethod
    def build_artifact_path(prefix: str, creative_id: Optional[str], extension: str = "png") -> str:
        """
        Unique write-once path: "{prefix}/{creative_id}_{epoch_ms}_{rand8}.{ext}".
        """
        owner = creative_id or "upload"
        stamp = int(time.time() * 1000)
        return f"{prefix}/{owner}_{stamp}_{uuid.uuid4().hex[:8]}.{extension}"

    @staticmethod
    def split_path(storage_path: str, default_bucket: str) -> tuple:
        """
        Split "bucket/path/to/file" into (bucket, path).

        A path without a bucket prefix belongs to `default_bucket`.
        """
        parts = storage_path.split("/", 1)
        if len(parts) == 2 and parts[0]:
            return parts[0], parts[1]
        return default_bucket, storage_path

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "image/png",
    ) -> str:
        """
        Upload bytes to Supabase Storage.

        Returns:
            The stored path inside the bucket
        """
        # Run sync Supabase call in thread pool to avoid blocking event loop
        await asyncio.to_thread(
            lambda: self.supabase.storage.from_(bucket).upload(
                path,
                data,
                {"content-type": content_type, "upsert": "false"}
            )
        )
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{path}")
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        url = self.supabase.storage.from_(bucket).get_public_url(path)
        # Older clients return a dict
        if isinstance(url, dict):
            url = url.get("publicUrl") or url.get("publicURL") or ""
        return url.rstrip("?")

    async def download(self, bucket: str, path: str) -> bytes:
        data = await asyncio.to_thread(
            lambda: self.supabase.storage.from_(bucket).download(path)
        )
        logger.info(f"Downloaded {len(data)} bytes from {bucket}/{path}")
        return data
