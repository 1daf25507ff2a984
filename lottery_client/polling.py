from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .errors import LotteryClientError

Refresh = Callable[[], Awaitable[object]]


class PollingScheduler:
    """Runs named background refreshes; each task can be cancelled on its own."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._tasks: Dict[str, asyncio.Task] = {}
        self._logger = logger or logging.getLogger("lotteryclient.polling")

    @property
    def names(self) -> List[str]:
        return [name for name, task in self._tasks.items() if not task.done()]

    def is_running(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    def every(self, name: str, interval: float, refresh: Refresh) -> asyncio.Task:
        self._replace(name)
        self._logger.info("Polling %s every %ss", name, interval)
        task = asyncio.create_task(self._run_forever(name, interval, refresh), name=f"poll:{name}")
        self._tasks[name] = task
        return task

    def once(self, name: str, refresh: Refresh) -> asyncio.Task:
        self._replace(name)
        task = asyncio.create_task(self._attempt(name, refresh), name=f"poll:{name}")
        self._tasks[name] = task
        return task

    def _replace(self, name: str) -> None:
        previous = self._tasks.pop(name, None)
        if previous is not None and not previous.done():
            self._logger.debug("Replacing running task %s", name)
            previous.cancel()

    async def _run_forever(self, name: str, interval: float, refresh: Refresh) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._attempt(name, refresh)

    async def _attempt(self, name: str, refresh: Refresh) -> None:
        try:
            await refresh()
        except asyncio.CancelledError:
            raise
        except LotteryClientError as exc:
            self._logger.warning("Refresh %s failed: %s; retrying next tick", name, exc)
        except Exception as exc:
            self._logger.exception("Refresh %s crashed: %s", name, exc)

    async def cancel(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def cancel_all(self) -> None:
        for name in list(self._tasks):
            await self.cancel(name)
        self._logger.info("Polling stopped")
