import asyncio
import time
from typing import Callable


class SessionTimer:
    """
    Wall-clock session timer. Runs as a fire-and-forget task that adds one
    second per tick; it only feeds the duration reported at completion.
    """

    def __init__(self, tick_sec: float = 1.0):
        self.tick_sec = tick_sec
        self.elapsed_seconds = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_sec)
            self.elapsed_seconds += 1

    def stop(self) -> int:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        return self.elapsed_seconds


class QuestionClock:
    """Measures how long the current question has been on screen."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started_at = clock()

    def reset(self) -> None:
        self._started_at = self._clock()

    def elapsed_seconds(self) -> int:
        return max(0, int(self._clock() - self._started_at))
