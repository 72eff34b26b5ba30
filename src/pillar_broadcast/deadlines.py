"""
pillar_broadcast.deadlines

Deadline-bounded execution of awaitables.

Responsibilities:
- Run one awaitable under an explicit timeout.
- Return a `Completed | TimedOut` result instead of raising on expiry, so callers
  decide how a timeout maps onto their own outcome (auth rejection, failed send, ...).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Completed(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class TimedOut:
    after: float


async def run_with_deadline(awaitable: Awaitable[T], *, timeout: float) -> Completed[T] | TimedOut:
    """
    Await `awaitable` for at most `timeout` seconds.

    On expiry the underlying task is cancelled and `TimedOut` is returned.
    Exceptions raised by the awaitable propagate unchanged.
    """

    try:
        value = await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        return TimedOut(after=timeout)
    return Completed(value)


# --- Module Notes -----------------------------------------------------------
# Three deadline tiers use this helper: identity verification, each individual send,
# and (via `asyncio.wait`) the overall dispatch batch in `services.dispatch`.
