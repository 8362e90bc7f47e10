"""Bounded waits for calls to external services."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from core.config import settings
from core.errors import ScreeningError, UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(
    awaitable: Awaitable[T],
    operation: str,
    timeout: Optional[float] = None,
) -> T:
    """
    Await an upstream call with a deadline.

    Args:
        awaitable: The call to the model, embedding service or vector store
        operation: Short name used in logs and error messages
        timeout: Seconds to wait (defaults to ``AI_TIMEOUT_SECONDS``)

    Returns:
        The awaited result

    Raises:
        UpstreamUnavailableError: on timeout or transport failure
    """
    timeout = settings.ai_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("%s timed out after %.1fs", operation, timeout)
        raise UpstreamTimeoutError(
            f"{operation} timed out after {timeout:g}s",
            details={"operation": operation},
        ) from exc
    except ScreeningError:
        raise
    except Exception as exc:
        logger.error("%s failed: %s", operation, exc, exc_info=True)
        raise UpstreamUnavailableError(
            f"{operation} failed: {type(exc).__name__}",
            details={"operation": operation},
        ) from exc
