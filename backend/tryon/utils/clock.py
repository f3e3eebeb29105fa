from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Time source used by the poll loop. Swapped for a fake clock in tests."""

    async def sleep(self, seconds: float) -> None: ...

    def monotonic(self) -> float: ...


class AsyncioClock:
    """Real time: cooperative asyncio sleeps and the monotonic clock."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def monotonic(self) -> float:
        return time.monotonic()
