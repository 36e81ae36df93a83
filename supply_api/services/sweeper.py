from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SweepJob = Callable[[], object]


class PeriodicSweeper:
    """Repeating maintenance task owned by the application lifespan.

    Every ``interval`` seconds each registered job runs once. A failing job is
    logged and skipped for that cycle; the loop itself only ends on ``stop``.
    """

    def __init__(
        self,
        interval: float = 30,
        *,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self.interval = interval
        self._sleep = sleep or asyncio.sleep
        self._jobs: List[Tuple[str, SweepJob]] = []
        self._task: Optional[asyncio.Task] = None
        self.cycles = 0
        self.failures = 0

    def register(self, name: str, job: SweepJob) -> None:
        self._jobs.append((name, job))

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> Dict[str, object]:
        results: Dict[str, object] = {}
        for name, job in self._jobs:
            try:
                results[name] = job()
            except Exception as exc:  # noqa: BLE001
                self.failures += 1
                logger.error("Sweep job %s failed: %s", name, exc, exc_info=True)
        self.cycles += 1
        return results

    async def _run_loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            results = self.run_once()
            logger.debug("Sweep cycle %d: %s", self.cycles, results)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="supply-sweeper")
        logger.info("Sweeper started (every %.0fs, %d jobs)", self.interval, len(self._jobs))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sweeper stopped after %d cycles", self.cycles)
