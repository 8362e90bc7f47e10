"""
Bulk operations service functions for API endpoints.

Bulk resume and knowledge-base uploads run strictly one item after another.
Each item gets its own result, so one bad file never hides the outcome of
the others.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from core.errors import ScreeningError

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class BulkItemResult:
    """Outcome of one item in a bulk operation."""

    filename: str
    success: bool
    id: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


async def run_sequentially(
    items: Iterable[T],
    handler: Callable[[T], Awaitable[BulkItemResult]],
    name_of: Callable[[T], str],
) -> list[BulkItemResult]:
    """
    Run ``handler`` over ``items`` in order, one at a time.

    Args:
        items: Work items (typically uploaded files)
        handler: Coroutine producing the result for one item
        name_of: Label for an item, used when the handler raises

    Returns:
        One BulkItemResult per item, in input order
    """
    results = []
    for item in items:
        name = name_of(item)
        try:
            results.append(await handler(item))
        except ScreeningError as exc:
            logger.warning("Bulk item %s failed: %s %s", name, exc.code, exc.message)
            results.append(
                BulkItemResult(
                    filename=name,
                    success=False,
                    id=exc.details.get("application_id"),
                    error_code=exc.code,
                    error=exc.message,
                )
            )
        except Exception as exc:
            logger.error("Bulk item %s failed unexpectedly: %s", name, exc, exc_info=True)
            results.append(
                BulkItemResult(
                    filename=name,
                    success=False,
                    error_code=INTERNAL_ERROR,
                    error="An unexpected error occurred",
                )
            )

    failed = sum(1 for r in results if not r.success)
    logger.info("Bulk run finished: %d items, %d failed", len(results), failed)
    return results
