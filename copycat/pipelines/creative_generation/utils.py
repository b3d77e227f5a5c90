"""Shared utilities for creative generation pipeline nodes."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from ...core.config import Config
from ...services.errors import ExternalCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_deadline(awaitable: Awaitable[T], service: str, timeout: Optional[float] = None) -> T:
    """
    Await an external call under the per-call deadline.

    Args:
        awaitable: The external call
        service: Name used in the error on expiry
        timeout: Seconds (default Config.call_timeout(); None disables)

    Raises:
        ExternalCallError: If the deadline expires
    """
    deadline = Config.call_timeout() if timeout is None else timeout
    if deadline is None:
        return await awaitable

    try:
        return await asyncio.wait_for(awaitable, timeout=deadline)
    except asyncio.TimeoutError as e:
        logger.error(f"{service} call exceeded {deadline:g}s deadline")
        raise ExternalCallError(service, f"timed out after {deadline:g}s") from e
