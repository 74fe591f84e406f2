"""Bounded polling for conditions the live client cannot signal."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable


async def poll_until(
    check: Callable[[], Awaitable[bool]],
    attempts: int,
    interval: float,
    backoff: float = 1.0,
) -> bool:
    """Await ``check`` up to ``attempts`` times, sleeping between tries.

    ``interval`` is in seconds and is multiplied by ``backoff`` after each
    failed try (1.0 keeps it fixed). Returns whether the check ever passed.
    """
    delay = interval
    for attempt in range(attempts):
        if await check():
            return True
        if attempt < attempts - 1:
            await asyncio.sleep(delay)
            delay *= backoff
    return False
