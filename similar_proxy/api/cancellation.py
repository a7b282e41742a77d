from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    pass


class _DisconnectAware(Protocol):
    async def is_disconnected(self) -> bool: ...


async def run_until_disconnected(
    request: _DisconnectAware,
    awaitable: Awaitable[T],
    *,
    poll_seconds: float = 0.5,
) -> T:
    """Await ``awaitable`` while watching the inbound connection.

    When the caller goes away the work is cancelled, which also cancels any
    in-flight upstream request or pagination delay, and ``ClientDisconnected``
    is raised.
    """
    task: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_seconds)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling upstream work")
                await _cancel_and_wait(task)
                raise ClientDisconnected()
    finally:
        if not task.done():
            await _cancel_and_wait(task)


async def _cancel_and_wait(task: asyncio.Future[Any]) -> None:
    # The walk must have fully unwound before the request's httpx client closes.
    task.cancel()
    (outcome,) = await asyncio.gather(task, return_exceptions=True)
    if isinstance(outcome, Exception):
        logger.warning("Upstream work failed while being cancelled", exc_info=outcome)
