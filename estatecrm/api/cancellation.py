"""Cancellation of in-flight work when the HTTP caller goes away."""

import asyncio
from contextlib import suppress
from typing import Awaitable, Callable, Optional, TypeVar

from estatecrm.core.config import settings
from estatecrm.core.logging import ContextualLogger, logger

T = TypeVar("T")


async def run_until_disconnected(
    work: Awaitable[T],
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: Optional[float] = None,
    log: ContextualLogger = logger,
) -> Optional[T]:
    """Run ``work`` as a task, cancelling it as soon as the caller disconnects.

    Cancelling the task cancels the outbound provider request it is awaiting.

    Args:
        work: The coroutine to run
        is_disconnected: Async predicate, usually ``request.is_disconnected``
        poll_interval: Seconds between disconnect checks, defaults to settings
        log: Contextual logger of the request

    Returns:
        The result of ``work``, or None if the caller disconnected first
    """
    interval = poll_interval or settings.DISCONNECT_POLL_INTERVAL_SECONDS
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=interval)
            if task in done:
                return task.result()
            if await is_disconnected():
                log.info("Client disconnected, cancelling in-flight CRM request")
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
                return None
    except asyncio.CancelledError:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise
