from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional, TypeVar

from lottery_client.session import LotterySession

T = TypeVar("T")


class SessionRunner:
    """Hosts one `LotterySession` on a private event loop thread.

    Flask handlers run on their own threads; they hand coroutines to this
    loop so that session state is only ever touched from one place.
    """

    def __init__(
        self,
        factory: Callable[[], LotterySession],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._factory = factory
        self._logger = logger or logging.getLogger("lotteryclient.runner")
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._session: Optional[LotterySession] = None

    @property
    def session(self) -> LotterySession:
        if self._session is None:
            raise RuntimeError("Session runner not started")
        return self._session

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        loop_ready = threading.Event()

        def _runner() -> None:
            loop = asyncio.new_event_loop()
            self._loop = loop
            asyncio.set_event_loop(loop)
            loop_ready.set()
            try:
                loop.run_forever()
            finally:
                loop.close()

        thread = threading.Thread(target=_runner, name="lottery-session", daemon=True)
        thread.start()
        loop_ready.wait(timeout=5.0)
        self._thread = thread

        async def _create() -> LotterySession:
            # asyncio primitives inside the session belong to this loop.
            return self._factory()

        self._session = self.call(_create())
        self._logger.info("Session runner started")

    def call(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        return self._submit(coro).result(timeout)

    def _submit(self, coro: Coroutine[Any, Any, T]) -> "Future[T]":
        if self._loop is None or not self.running:
            coro.close()
            raise RuntimeError("Session runner not started")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self, timeout: float = 5.0) -> None:
        if not self.running or self._loop is None:
            return
        if self._session is not None:
            try:
                self.call(self._session.close(), timeout=timeout)
            except Exception as exc:
                self._logger.warning("Session did not close cleanly: %s", exc)
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None
        self._loop = None
        self._session = None
        self._logger.info("Session runner stopped")
