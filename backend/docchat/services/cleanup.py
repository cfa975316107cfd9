"""Non-critical cleanup tasks.

Side operations that follow a primary operation (removing a file from the
external index, adjusting counters). Each task is attempted once; a failure
is logged and never fails the primary operation.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def run_cleanup(description: str, action: Callable[[], Any | Awaitable[Any]]) -> bool:
    """Run one cleanup task. Returns True if it succeeded."""
    try:
        result = action()
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(f"Cleanup '{description}' failed (continuing anyway): {e}")
        return False
    logger.debug(f"Cleanup '{description}' done")
    return True
