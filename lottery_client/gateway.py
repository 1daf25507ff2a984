from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from web3 import Web3

from .errors import LotteryClientError, ReadFailed, TransactionFailed, UnexpectedResponse
from .types import ContractRef, LotteryPhase, to_uint
from .wallet.base import Accessor, SigningAccessor, SubmittedTransaction


class ContractGateway:
    """Typed calls against the lottery contract.

    Reads accept any accessor and raise `ReadFailed` (or its subclass
    `UnexpectedResponse`) on failure. Writes need a signing accessor and
    raise `TransactionFailed` if the transaction cannot be submitted.
    """

    def __init__(self, contract: ContractRef, entry_fee_ether: Decimal = Decimal("0.01")) -> None:
        self._contract = contract
        self._entry_fee_wei = int(Web3.to_wei(entry_fee_ether, "ether"))

    @property
    def entry_fee_wei(self) -> int:
        return self._entry_fee_wei

    async def _read(self, accessor: Accessor, function: str, *args: Any) -> Any:
        try:
            return await accessor.call(self._contract, function, *args)
        except LotteryClientError:
            raise
        except Exception as exc:
            raise ReadFailed(f"{function}() failed: {exc}") from exc

    async def get_phase(self, accessor: Accessor) -> LotteryPhase:
        raw = to_uint(await self._read(accessor, "state"), "state")
        try:
            return LotteryPhase(raw)
        except ValueError as exc:
            raise UnexpectedResponse(f"state: unknown lottery phase {raw}") from exc

    async def get_entry_count(self, accessor: Accessor) -> int:
        return to_uint(await self._read(accessor, "entryCount"), "entryCount")

    async def get_min_entry_count(self, accessor: Accessor) -> int:
        return to_uint(await self._read(accessor, "minEntryCount"), "minEntryCount")

    async def get_owner_entry_count(self, accessor: Accessor, address: str) -> int:
        return to_uint(await self._read(accessor, "ownerEntryCount", address), "ownerEntryCount")

    async def get_owner_prize_amount(self, accessor: Accessor, address: str) -> int:
        return to_uint(await self._read(accessor, "ownerPrizeAmount", address), "ownerPrizeAmount")

    async def get_owner(self, accessor: Accessor) -> str:
        owner = await self._read(accessor, "owner")
        if not isinstance(owner, str) or not Web3.is_address(owner):
            raise UnexpectedResponse(f"owner: not an address: {owner!r}")
        return owner

    async def _write(
        self, accessor: SigningAccessor, function: str, value: int = 0
    ) -> SubmittedTransaction:
        if not getattr(accessor, "signing", False):
            raise TypeError(f"{function}() needs a signing accessor")
        try:
            return await accessor.transact(self._contract, function, value=value)
        except LotteryClientError:
            raise
        except Exception as exc:
            raise TransactionFailed(f"{function}() was not submitted: {exc}") from exc

    async def submit_entry(
        self, accessor: SigningAccessor, value_wei: Optional[int] = None
    ) -> SubmittedTransaction:
        value = self._entry_fee_wei if value_wei is None else value_wei
        return await self._write(accessor, "submitEntry", value=value)

    async def withdraw_prize_money(self, accessor: SigningAccessor) -> SubmittedTransaction:
        return await self._write(accessor, "withdrawPrizeMoney")

    async def assign_winner(self, accessor: SigningAccessor) -> SubmittedTransaction:
        return await self._write(accessor, "assignWinner")
