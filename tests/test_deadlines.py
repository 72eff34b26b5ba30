from __future__ import annotations

import asyncio

import pytest

from pillar_broadcast.deadlines import Completed, TimedOut, run_with_deadline


async def _value(delay: float, value: str) -> str:
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_completed_within_deadline() -> None:
    assert await run_with_deadline(_value(0, "done"), timeout=1) == Completed("done")


@pytest.mark.asyncio
async def test_timed_out_result_instead_of_exception() -> None:
    outcome = await run_with_deadline(_value(10, "late"), timeout=0.01)
    assert outcome == TimedOut(after=0.01)


@pytest.mark.asyncio
async def test_errors_propagate() -> None:
    async def boom() -> None:
        raise RuntimeError("transport down")

    with pytest.raises(RuntimeError):
        await run_with_deadline(boom(), timeout=1)
