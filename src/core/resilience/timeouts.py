"""
Bounded Operations

Races an awaitable against a timer. Losing the race raises
``OperationTimeoutError`` but does NOT cancel the underlying I/O: the
operation keeps running on its own task and may still complete later.
Callers that apply results must check they are still the active consumer.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.core.exceptions import OperationTimeoutError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _consume_late_result(operation: str):
    def _callback(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Late failure after timeout", operation=operation, error=str(exc))

    return _callback


async def run_with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await ``awaitable`` for at most ``timeout`` seconds.

    Args:
        awaitable: Coroutine or future to run
        timeout: Deadline in seconds
        operation: Name used in the error and logs

    Returns:
        The operation's result

    Raises:
        OperationTimeoutError: If the deadline passes first
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        task.add_done_callback(_consume_late_result(operation))
        raise OperationTimeoutError(operation, timeout) from None
