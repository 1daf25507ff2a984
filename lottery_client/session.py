from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from .config import ClientSettings
from .connection import ConnectionManager
from .errors import LotteryClientError
from .gateway import ContractGateway
from .network import NetworkGuard
from .notices import LogNotifier, Notifier
from .polling import PollingScheduler
from .presentation import Action, resolve
from .state import SessionState, has_entered_from, is_owner_from, is_winner_from
from .types import ContractRef
from .wallet.base import SigningAccessor, SubmittedTransaction, WalletProvider
from .wallet.web3_provider import Web3WalletProvider

Listener = Callable[[Action], None]
WritePlan = Tuple[
    str,
    Callable[[SigningAccessor], Awaitable[SubmittedTransaction]],
    str,
    Sequence[Callable[[], Awaitable[bool]]],
]

WRITE_OPERATIONS = ("submit_entry", "withdraw_prize_money", "assign_winner")
OPERATIONS = ("connect",) + WRITE_OPERATIONS


class LotterySession:
    """One connected user's view of the lottery.

    Holds the authoritative `SessionState`, keeps it fresh through the
    polling scheduler and user-triggered writes, and tells subscribers when
    the resolved action changes. Every public coroutine catches client
    errors itself; callers only see a success flag.
    """

    def __init__(
        self,
        settings: ClientSettings,
        provider: WalletProvider,
        contract: ContractRef,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[PollingScheduler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._notifier = notifier or LogNotifier()
        self._logger = logger or logging.getLogger("lotteryclient.session")
        guard = NetworkGuard(
            settings.required_chain_id, self._notifier, network_name=settings.network_name
        )
        self._connection = ConnectionManager(provider, guard)
        self._gateway = ContractGateway(contract, settings.entry_fee_ether)
        self._scheduler = scheduler or PollingScheduler()
        self._connect_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._writes: Set[asyncio.Task] = set()
        self._unstarted_writes: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []
        self.state = SessionState()
        self._action = resolve(self.state)

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, notifier: Optional[Notifier] = None
    ) -> "LotterySession":
        provider = Web3WalletProvider(
            settings.wallet_rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            private_key=settings.private_key,
            gas_limit=settings.contract.gas_limit,
            confirmations=settings.contract.confirmations,
        )
        contract = ContractRef.from_artifact(settings.contract.address, settings.contract.abi_path)
        return cls(settings, provider, contract, notifier=notifier)

    @property
    def action(self) -> Action:
        return self._action

    @property
    def gateway(self) -> ContractGateway:
        return self._gateway

    @property
    def scheduler(self) -> PollingScheduler:
        return self._scheduler

    @property
    def write_in_flight(self) -> bool:
        return self._write_lock.locked() or self.state.pending

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        if not self.state.update(**changes):
            return
        action = resolve(self.state)
        if action == self._action:
            return
        self._action = action
        self._logger.debug("Action is now %s", action.kind.value)
        for listener in list(self._listeners):
            try:
                listener(action)
            except Exception as exc:
                self._logger.exception("Action listener failed: %s", exc)

    # ------------------------------------------------------------------ #
    # Connection
    # ------------------------------------------------------------------ #

    async def connect(self) -> bool:
        # Overlapping callers wait for the attempt in progress instead of starting another.
        async with self._connect_lock:
            if self.state.connected:
                return True
            try:
                signer: SigningAccessor = await self._connection.acquire(need_signing=True)
                address = await signer.get_address()
            except LotteryClientError as exc:
                self._logger.warning("Wallet connection failed: %s", exc)
                return False
            except Exception as exc:
                self._logger.exception("Wallet connection failed unexpectedly: %s", exc)
                return False

            self._logger.info("Wallet connected: %s", address)
            self._set(connected=True, address=address)

            await self.refresh_owner()
            await self.refresh_min_entry_count()
            # Entry status is read once per connection; only winner and count are polled.
            await self._scheduler.once("has-entered", self.refresh_has_entered)
            await self.refresh_phase()
            self.start_polling()
        return True

    def start_polling(self) -> None:
        interval = self._settings.poll_interval_seconds
        self._scheduler.every("winner", interval, self.refresh_is_winner)
        self._scheduler.every("entry-count", interval, self.refresh_entry_count)

    async def close(self) -> None:
        await self._scheduler.cancel_all()
        for task in list(self._writes):
            task.cancel()
        await asyncio.gather(*self._writes, return_exceptions=True)
        await self._connection.teardown()
        self._set(**asdict(SessionState()))
        self._logger.info("Session closed")

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def _refresh(self, name: str, read: Callable[[], Awaitable[Dict[str, Any]]]) -> bool:
        if not self.state.connected:
            self._logger.debug("Skipping %s refresh; wallet not connected", name)
            return False
        try:
            changes = await read()
        except LotteryClientError as exc:
            self._logger.warning("Could not refresh %s, keeping last value: %s", name, exc)
            return False
        except Exception as exc:
            self._logger.exception("Refreshing %s failed unexpectedly: %s", name, exc)
            return False
        self._set(**changes)
        return True

    async def _signer_address(self) -> str:
        signer: SigningAccessor = await self._connection.acquire(need_signing=True)
        return await signer.get_address()

    async def refresh_owner(self) -> bool:
        async def read() -> Dict[str, Any]:
            accessor = await self._connection.acquire()
            owner = await self._gateway.get_owner(accessor)
            address = await self._signer_address()
            return {"is_owner": is_owner_from(owner, address)}

        return await self._refresh("owner", read)

    async def refresh_min_entry_count(self) -> bool:
        async def read() -> Dict[str, Any]:
            accessor = await self._connection.acquire()
            return {"min_entry_count": await self._gateway.get_min_entry_count(accessor)}

        return await self._refresh("minEntryCount", read)

    async def refresh_entry_count(self) -> bool:
        async def read() -> Dict[str, Any]:
            accessor = await self._connection.acquire()
            return {"entry_count": await self._gateway.get_entry_count(accessor)}

        return await self._refresh("entryCount", read)

    async def refresh_has_entered(self) -> bool:
        async def read() -> Dict[str, Any]:
            signer = await self._connection.acquire(need_signing=True)
            address = await signer.get_address()
            count = await self._gateway.get_owner_entry_count(signer, address)
            return {"has_entered": has_entered_from(count)}

        return await self._refresh("hasEntered", read)

    async def refresh_is_winner(self) -> bool:
        async def read() -> Dict[str, Any]:
            signer = await self._connection.acquire(need_signing=True)
            address = await signer.get_address()
            prize = await self._gateway.get_owner_prize_amount(signer, address)
            return {"is_winner": is_winner_from(prize)}

        return await self._refresh("isWinner", read)

    async def refresh_phase(self) -> bool:
        async def read() -> Dict[str, Any]:
            accessor = await self._connection.acquire()
            return {"phase": await self._gateway.get_phase(accessor)}

        return await self._refresh("phase", read)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def _write_plan(self, operation: str) -> WritePlan:
        plans: Dict[str, WritePlan] = {
            "submit_entry": (
                "submitEntry",
                self._gateway.submit_entry,
                "You successfully entered the lottery!",
                (self.refresh_has_entered, self.refresh_entry_count),
            ),
            "withdraw_prize_money": (
                "withdrawPrizeMoney",
                self._gateway.withdraw_prize_money,
                "You successfully withdrawn your prize money!",
                (self.refresh_is_winner,),
            ),
            "assign_winner": (
                "assignWinner",
                self._gateway.assign_winner,
                "You've initiated the process to select a winner!",
                (self.refresh_entry_count, self.refresh_phase, self.refresh_is_winner),
            ),
        }
        return plans[operation]

    async def _claim_write(self, name: str) -> bool:
        """Take the write lock, or refuse when disconnected or already writing."""
        if not self.state.connected:
            self._logger.warning("%s ignored; wallet not connected", name)
            return False
        if self.write_in_flight:
            self._logger.warning("%s rejected; a transaction is pending", name)
            return False
        # Free lock, so this returns without yielding.
        await self._write_lock.acquire()
        return True

    async def _run_claimed_write(self, plan: WritePlan) -> bool:
        self._unstarted_writes.discard(asyncio.current_task())
        name, send, success_message, refreshes = plan
        try:
            try:
                signer: SigningAccessor = await self._connection.acquire(need_signing=True)
                tx = await send(signer)
                self._set(pending=True)
                self._logger.info("%s submitted: %s", name, tx.tx_hash)
                await tx.wait()
            except LotteryClientError as exc:
                # No user notice on failure; the log is the only trace.
                self._logger.error("%s failed: %s", name, exc)
                return False
            except Exception as exc:
                self._logger.exception("%s failed unexpectedly: %s", name, exc)
                return False
            finally:
                self._set(pending=False)
        finally:
            self._write_lock.release()

        self._logger.info("%s confirmed: %s", name, tx.tx_hash)
        self._notifier.alert(success_message)
        for refresh in refreshes:
            await refresh()
        return True

    async def _run_write(self, operation: str) -> bool:
        plan = self._write_plan(operation)
        if not await self._claim_write(plan[0]):
            return False
        return await self._run_claimed_write(plan)

    async def submit_entry(self) -> bool:
        return await self._run_write("submit_entry")

    async def withdraw_prize_money(self) -> bool:
        return await self._run_write("withdraw_prize_money")

    async def assign_winner(self) -> bool:
        return await self._run_write("assign_winner")

    async def perform(self, operation: str) -> bool:
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        return await getattr(self, operation)()

    async def launch(self, operation: str) -> bool:
        """Start a write in the background and return once it holds the write slot.

        Returns False, sending nothing, when the wallet is not connected or
        another write is still in flight. The outcome of the write itself
        reaches subscribers through the usual state changes.
        """
        if operation not in WRITE_OPERATIONS:
            raise ValueError(f"Unknown write operation: {operation}")
        plan = self._write_plan(operation)
        if not await self._claim_write(plan[0]):
            return False
        task = asyncio.ensure_future(self._run_claimed_write(plan))
        self._writes.add(task)
        self._unstarted_writes.add(task)
        task.add_done_callback(self._write_finished)
        return True

    def _write_finished(self, task: asyncio.Task) -> None:
        self._writes.discard(task)
        # A write cancelled before its first step still holds its claim.
        if task in self._unstarted_writes:
            self._unstarted_writes.discard(task)
            self._write_lock.release()
