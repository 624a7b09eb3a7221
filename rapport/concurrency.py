"""Async fan-out helpers: bounded mapping, deadlines, and the two failure policies.

``required`` and ``best_effort`` are the only ways pipeline code wraps an
upstream call. ``required`` lets the error reach the caller (geo lookup,
synthesis); ``best_effort`` logs and hands back a default (search snippets,
place categories, whole context/place branches).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

from rapport.errors import TransportTimeout
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="concurrency")

T = TypeVar("T")
R = TypeVar("R")


async def map_bounded(
    items: Iterable[T],
    limit: int,
    mapper: Callable[[T], Awaitable[R]],
) -> List[R]:
    """
    Apply ``mapper`` to every item with at most ``limit`` calls in flight.

    Results come back in input order no matter which call finishes first.
    At most ``min(limit, len(items))`` workers are started; each pulls the
    next unclaimed index. The first mapper error cancels the other workers
    and propagates.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    pending = list(items)
    if not pending:
        return []

    results: List[Optional[R]] = [None] * len(pending)
    # Shared across workers; safe because workers only interleave at awaits.
    queue = iter(enumerate(pending))

    async def worker() -> None:
        for index, item in queue:
            results[index] = await mapper(item)

    tasks = [asyncio.ensure_future(worker()) for _ in range(min(limit, len(pending)))]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
    return results  # type: ignore[return-value]


async def with_deadline(awaitable: Awaitable[T], seconds: float, message: str) -> T:
    """Await ``awaitable`` for at most ``seconds``; raise TransportTimeout(message) after that.

    The abandoned operation is cancelled, which aborts an in-flight httpx request.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise TransportTimeout(message) from None


async def required(awaitable: Awaitable[T], *, deadline: float, message: str) -> T:
    """Terminal policy: the call must succeed within ``deadline`` or its error propagates."""
    return await with_deadline(awaitable, deadline, message)


async def best_effort(
    awaitable: Awaitable[T],
    *,
    default: Callable[[], T],
    label: str,
    deadline: float | None = None,
) -> T:
    """Degrading policy: any failure (or missed deadline) is logged and ``default()`` is returned."""
    try:
        if deadline is None:
            return await awaitable
        return await with_deadline(awaitable, deadline, f"{label} timed out.")
    except Exception as exc:
        logger.warning("%s failed; continuing with default: %s", label, exc)
        return default()
