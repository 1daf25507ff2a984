from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .errors import ConnectionRejected, LotteryClientError
from .network import NetworkGuard
from .wallet.base import Accessor, ProviderHandle, WalletProvider


class ConnectionManager:
    """Owns the session's single wallet connection and hands out validated accessors."""

    def __init__(
        self,
        provider: WalletProvider,
        guard: NetworkGuard,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._guard = guard
        self._handle: Optional[ProviderHandle] = None
        self._lock = asyncio.Lock()
        self._logger = logger or logging.getLogger("lotteryclient.connection")

    async def _ensure_handle(self) -> ProviderHandle:
        if self._handle is not None:
            return self._handle
        # Concurrent first callers share one prompt.
        async with self._lock:
            if self._handle is None:
                self._logger.debug("Opening wallet connection")
                try:
                    self._handle = await self._provider.connect()
                except LotteryClientError:
                    raise
                except Exception as exc:
                    raise ConnectionRejected(f"Wallet connection failed: {exc}") from exc
            return self._handle

    async def acquire(self, need_signing: bool = False) -> Accessor:
        handle = await self._ensure_handle()
        accessor: Accessor = await handle.get_signer() if need_signing else handle.reader()
        return await self._guard.validate(accessor)

    async def teardown(self) -> None:
        self._handle = None
        await self._provider.close()
