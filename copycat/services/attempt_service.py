"""
AttemptService - lifecycle records of generation attempts.

The attempt row is created before any work starts (primary write: a failure
aborts the request). Terminal status writes are secondary: a failed write
is logged and reported, never raised, so it cannot lose a generated result.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.config import Config
from ..core.database import get_supabase_client
from .models import AttemptStatus, GenerationAttempt

logger = logging.getLogger(__name__)


class AttemptService:
    """Attempt store over a Supabase table."""

    def __init__(self, supabase: Optional[Client] = None, table: Optional[str] = None):
        self.supabase: Client = supabase or get_supabase_client()
        self.table = table or Config.RUNS_TABLE
        logger.info(f"AttemptService initialized (table={self.table})")

    async def create_attempt(self, attempt: GenerationAttempt) -> str:
        """
        Insert a new attempt row.

        Args:
            attempt: Attempt to persist; `attempt.id` is set from the insert

        Returns:
            ID of the created row
        """
        data = attempt.to_record()
        result = await asyncio.to_thread(
            lambda: self.supabase.table(self.table).insert(data).execute()
        )
        attempt_id = str(result.data[0]["id"])
        attempt.id = attempt_id

        logger.info(f"Created generation attempt: {attempt_id} ({attempt.copy_mode}, {attempt.aspect_ratio})")
        return attempt_id

    async def update_attempt_status(
        self,
        attempt_id: str,
        status: AttemptStatus,
        result_ref: Optional[str] = None,
        error_message: Optional[str] = None,
        finished_at: Optional[datetime] = None,
        latency_ms: Optional[int] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Update status and outcome fields of an attempt.

        Args:
            attempt_id: ID of the attempt row
            status: New status
            result_ref: Public URL or storage path of the result
            error_message: Error message if failed
            finished_at: Terminal timestamp
            latency_ms: Wall time from start to terminal state
            config: Attempt config, including the selected edit policy
        """
        updates: Dict[str, Any] = {"status": status.value}

        if result_ref:
            updates["result_url"] = result_ref
        if error_message:
            updates["error_message"] = error_message
        if finished_at:
            updates["finished_at"] = finished_at.isoformat()
        if latency_ms is not None:
            updates["latency_ms"] = latency_ms
        if config is not None:
            updates["config"] = config

        await asyncio.to_thread(
            lambda: self.supabase.table(self.table).update(updates).eq("id", attempt_id).execute()
        )
        logger.info(f"Updated attempt {attempt_id}: {status.value}")

    async def record_terminal(self, attempt: GenerationAttempt) -> bool:
        """
        Persist the terminal state of an attempt.

        Returns:
            True if written, False if the write failed (logged at ERROR)
        """
        if attempt.id is None:
            logger.error(f"Cannot record terminal state {attempt.status.value}: attempt has no id")
            return False

        try:
            await self.update_attempt_status(
                attempt.id,
                attempt.status,
                result_ref=attempt.result_ref,
                error_message=attempt.error_message,
                finished_at=attempt.finished_at,
                latency_ms=attempt.latency_ms,
                config=attempt.to_record()["config"],
            )
            return True
        except Exception as e:
            logger.error(f"Failed to record terminal state {attempt.status.value} for attempt {attempt.id}: {e}")
            return False

    async def list_attempts(self, limit: int = 100, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Most recent attempts first.

        Args:
            limit: Maximum number of rows
            status: Optional status filter
        """
        def _query():
            query = self.supabase.table(self.table).select("*")
            if status:
                query = query.eq("status", status)
            return query.order("started_at", desc=True).limit(limit).execute()

        result = await asyncio.to_thread(_query)
        return result.data or []
