# citystate/domain/common/clock.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickFn = Callable[[int], None]
ExpireFn = Callable[[], None]


class TurnClock:
    """
    Countdown for one turn, driven by the running asyncio loop.

    - on_tick(remaining) fires once per interval with the decremented value
      (D-1 ... 0), never with the starting value.
    - on_expire() fires exactly once after the tick that reaches 0.
    - start() on a running clock stops the previous run first.
    - stop() is idempotent. Every run has a generation number and a stale
      generation never reaches its callbacks, even if its task is mid-step.
    """

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._remaining = 0

    @property
    def running(self) -> bool:
        return self._task is not None

    @property
    def remaining(self) -> int:
        return self._remaining

    def start(self, duration: int, on_tick: TickFn, on_expire: ExpireFn) -> None:
        self.stop()
        self._generation += 1
        self._remaining = max(0, int(duration))
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation, on_tick, on_expire))

    def stop(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, generation: int, on_tick: TickFn, on_expire: ExpireFn) -> None:
        try:
            while self._remaining > 0:
                await asyncio.sleep(self.interval)
                if generation != self._generation:
                    return
                self._remaining -= 1
                on_tick(self._remaining)
                if generation != self._generation:
                    return
            if generation != self._generation:
                return
            if asyncio.current_task() is self._task:
                self._task = None
            on_expire()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Turn clock callback failed; clock halted")
            if generation == self._generation:
                self._task = None
