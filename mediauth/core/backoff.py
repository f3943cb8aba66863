"""Backoff utilities.

`exponential_backoff` yields the attempt's delay budget, then sleeps before the
next attempt. With ``max_attempts=1`` it yields once and never sleeps, which is
how the database bootstrap keeps a single bounded attempt by default.
"""
import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[float]:
    delay = initial_delay
    for attempt in range(1, max(max_attempts, 1) + 1):
        yield delay
        if attempt < max_attempts:
            await asyncio.sleep(delay)
            delay = min(delay * multiplier, max_delay)
