"""Timer - periodic task service

Runs named interval tasks on the event loop. Used for the orphan session
sweep; callbacks may be sync or async and a failing callback never stops
the loop.

Usage:
    timer = Timer()
    timer.register_interval("session_sweep", 30.0, registry.sweep)

    task = asyncio.create_task(timer.run())
    ...
    timer.stop()
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Coroutine

from . import config
from .telemetry import get_logger, metrics

logger = get_logger(__name__)

TaskCallback = Callable[[], Any | Coroutine[Any, Any, Any]]


@dataclass
class IntervalTask:
    """A registered periodic task"""
    name: str
    interval: float  # seconds
    callback: TaskCallback
    last_run: float | None = None  # loop time of the previous run


class Timer:
    """Single-actor interval scheduler

    Tasks run sequentially inside one tick, so a callback is never
    re-entered while it is still running.
    """

    def __init__(self, tick_interval: float | None = None):
        self._tick_interval = tick_interval or config.TIMER_TICK_INTERVAL
        self._interval_tasks: dict[str, IntervalTask] = {}
        self._running = False

    def register_interval(self, name: str, interval: float, callback: TaskCallback) -> None:
        """Register (or replace) a periodic task.

        The first run happens one full interval after the timer starts.
        """
        self._interval_tasks[name] = IntervalTask(name=name, interval=interval, callback=callback)
        logger.debug(f"[Timer] Registered interval task: {name} ({interval}s)")

    def unregister_interval(self, name: str) -> bool:
        if name in self._interval_tasks:
            del self._interval_tasks[name]
            logger.debug(f"[Timer] Unregistered interval task: {name}")
            return True
        return False

    async def run(self) -> None:
        """Tick until stop() is called or the task is cancelled."""
        if self._running:
            logger.warning("[Timer] Already running")
            return

        self._running = True
        logger.info(f"[Timer] Started (tick={self._tick_interval}s)")

        try:
            while self._running:
                await self._tick()
                await asyncio.sleep(self._tick_interval)
        except asyncio.CancelledError:
            logger.info("[Timer] Cancelled")
        finally:
            self._running = False

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info("[Timer] Stopping...")

    async def _tick(self) -> None:
        now = asyncio.get_running_loop().time()

        for task in list(self._interval_tasks.values()):
            if task.last_run is None:
                task.last_run = now
                continue
            if now - task.last_run >= task.interval:
                task.last_run = now
                await self._execute_callback(task.name, task.callback)

    async def _execute_callback(self, name: str, callback: TaskCallback) -> None:
        try:
            result = callback()
            if inspect.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"[Timer] Task '{name}' failed: {e}")
            metrics.inc("timer.errors", {"task": name})

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def interval_task_count(self) -> int:
        return len(self._interval_tasks)

    def get_interval_tasks(self) -> list[str]:
        return list(self._interval_tasks.keys())
