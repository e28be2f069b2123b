"""Wall-clock and sleep abstraction so time-dependent code can be tested deterministically."""

import asyncio
import time


class Clock:
    """Real clock: epoch milliseconds and asyncio sleep."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


SYSTEM_CLOCK = Clock()
