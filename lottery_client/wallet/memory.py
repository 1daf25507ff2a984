from __future__ import annotations

import asyncio
import random
import secrets
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..errors import ConnectionRejected, TransactionFailed
from ..types import ContractRef, LotteryPhase, NetworkInfo, normalize_address
from .base import Accessor, ProviderHandle, SigningAccessor, SubmittedTransaction, WalletProvider


class ContractReverted(Exception):
    pass


class InMemoryLottery:
    """In-process stand-in for the lottery contract.

    Mirrors the read/write surface of the deployed contract closely enough to
    drive a session end to end without a chain: one entry per address, a
    fixed entry fee, an owner-only `assignWinner` once `minEntryCount` entries
    are in, and a per-address prize balance that `withdrawPrizeMoney` clears.
    """

    def __init__(
        self,
        owner: str,
        min_entry_count: int = 1,
        entry_fee: int = 10**16,
        phase: LotteryPhase = LotteryPhase.OPEN,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.owner = owner
        self.min_entry_count = min_entry_count
        self.entry_fee = entry_fee
        self.phase = phase
        self.entries: Dict[str, int] = {}
        self.prizes: Dict[str, int] = {}
        self.pot = 0
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.failing_reads: Set[str] = set()
        self.overrides: Dict[str, Any] = {}
        self._rng = rng or random.Random()
        self._gate: Optional[asyncio.Event] = None

    # Test hooks ---------------------------------------------------------

    def hold_confirmations(self) -> None:
        self._gate = asyncio.Event()

    def release_confirmations(self) -> None:
        if self._gate is not None:
            self._gate.set()
        self._gate = None

    async def _confirmation(self) -> None:
        if self._gate is not None:
            await self._gate.wait()

    # Contract surface ---------------------------------------------------

    def read(self, function: str, *args: Any) -> Any:
        self.calls.append((function, args))
        if function in self.failing_reads:
            raise ConnectionError(f"{function}: RPC unavailable")
        if function in self.overrides:
            return self.overrides[function]
        readers: Dict[str, Callable[..., Any]] = {
            "state": lambda: int(self.phase),
            "entryCount": lambda: sum(self.entries.values()),
            "minEntryCount": lambda: self.min_entry_count,
            "ownerEntryCount": lambda address: self.entries.get(normalize_address(address), 0),
            "ownerPrizeAmount": lambda address: self.prizes.get(normalize_address(address), 0),
            "owner": lambda: self.owner,
        }
        if function not in readers:
            raise ContractReverted(f"unknown function {function}")
        return readers[function](*args)

    def write(self, sender: str, function: str, *args: Any, value: int = 0) -> None:
        self.calls.append((function, args))
        sender_key = normalize_address(sender)
        if function == "submitEntry":
            if self.phase != LotteryPhase.OPEN:
                raise ContractReverted("lottery is paused")
            if value != self.entry_fee:
                raise ContractReverted("wrong entry fee")
            if self.entries.get(sender_key):
                raise ContractReverted("already entered")
            self.entries[sender_key] = 1
            self.pot += value
        elif function == "withdrawPrizeMoney":
            if not self.prizes.get(sender_key):
                raise ContractReverted("no prize to withdraw")
            self.prizes[sender_key] = 0
        elif function == "assignWinner":
            if sender_key != normalize_address(self.owner):
                raise ContractReverted("only owner")
            if sum(self.entries.values()) < self.min_entry_count:
                raise ContractReverted("not enough entries")
            winner = self._rng.choice(sorted(self.entries))
            self.prizes[winner] = self.prizes.get(winner, 0) + self.pot
            self.pot = 0
            self.entries.clear()
        else:
            raise ContractReverted(f"unknown function {function}")


class InMemoryTransaction(SubmittedTransaction):
    def __init__(self, lottery: InMemoryLottery, sender: str, function: str, args, value: int) -> None:
        self.tx_hash = "0x" + secrets.token_hex(32)
        self._lottery = lottery
        self._sender = sender
        self._function = function
        self._args = args
        self._value = value

    async def wait(self) -> None:
        await self._lottery._confirmation()
        try:
            self._lottery.write(self._sender, self._function, *self._args, value=self._value)
        except ContractReverted as exc:
            raise TransactionFailed(f"{self._function} reverted: {exc}", tx_hash=self.tx_hash) from exc


class InMemoryAccessor(Accessor):
    def __init__(self, handle: "InMemoryProviderHandle") -> None:
        self._handle = handle

    async def get_network(self) -> NetworkInfo:
        return await self._handle.get_network()

    async def call(self, contract: ContractRef, function: str, *args: Any) -> Any:
        await asyncio.sleep(0)
        return self._handle.lottery.read(function, *args)


class InMemorySigningAccessor(InMemoryAccessor, SigningAccessor):
    def __init__(self, handle: "InMemoryProviderHandle", address: str) -> None:
        super().__init__(handle)
        self._address = address

    async def get_address(self) -> str:
        return self._address

    async def transact(
        self, contract: ContractRef, function: str, *args: Any, value: int = 0
    ) -> SubmittedTransaction:
        await asyncio.sleep(0)
        return InMemoryTransaction(self._handle.lottery, self._address, function, args, value)


class InMemoryProviderHandle(ProviderHandle):
    def __init__(self, provider: "InMemoryWalletProvider") -> None:
        self._provider = provider

    @property
    def lottery(self) -> InMemoryLottery:
        return self._provider.lottery

    async def get_network(self) -> NetworkInfo:
        await asyncio.sleep(0)
        return NetworkInfo(chain_id=self._provider.chain_id)

    def reader(self) -> Accessor:
        return InMemoryAccessor(self)

    async def get_signer(self) -> SigningAccessor:
        return InMemorySigningAccessor(self, self._provider.address)


class InMemoryWalletProvider(WalletProvider):
    """Wallet holding one account, connected to an `InMemoryLottery`."""

    def __init__(
        self,
        lottery: InMemoryLottery,
        address: str,
        chain_id: int = 4,
        reject: bool = False,
    ) -> None:
        self.lottery = lottery
        self.address = address
        self.chain_id = chain_id
        self.reject = reject
        self.connect_calls = 0

    def switch_network(self, chain_id: int) -> None:
        self.chain_id = chain_id

    async def connect(self) -> ProviderHandle:
        self.connect_calls += 1
        await asyncio.sleep(0)
        if self.reject:
            raise ConnectionRejected("User rejected the wallet connection request")
        return InMemoryProviderHandle(self)
