"""Best-effort execution of auxiliary writes after a committed state change."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def run_side_effect(
    db: AsyncSession,
    description: str,
    action: Callable[[], Awaitable[Any]],
) -> bool:
    """Run ``action`` inside a SAVEPOINT, isolating its failure.

    A failed action is rolled back to the savepoint and logged. The outcome
    is returned for logging only; callers never branch on it.
    """
    try:
        async with db.begin_nested():
            await action()
    except Exception:
        logger.exception(f"Side effect failed: {description}")
        return False
    return True
