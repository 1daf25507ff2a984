from __future__ import annotations

import abc
from typing import Any

from ..types import ContractRef, NetworkInfo


class SubmittedTransaction(abc.ABC):
    """A write that has been broadcast but not necessarily mined."""

    tx_hash: str

    @abc.abstractmethod
    async def wait(self) -> None:
        """Block until the transaction is confirmed.

        Implementations raise `TransactionFailed` when the transaction
        reverts or the confirmation cannot be obtained.
        """


class Accessor(abc.ABC):
    """Read-only view of the chain through the wallet provider."""

    signing = False

    @abc.abstractmethod
    async def get_network(self) -> NetworkInfo:
        ...

    @abc.abstractmethod
    async def call(self, contract: ContractRef, function: str, *args: Any) -> Any:
        """Run a constant contract function and return its raw result."""


class SigningAccessor(Accessor):
    """Accessor bound to the account currently selected in the wallet."""

    signing = True

    @abc.abstractmethod
    async def get_address(self) -> str:
        ...

    @abc.abstractmethod
    async def transact(
        self, contract: ContractRef, function: str, *args: Any, value: int = 0
    ) -> SubmittedTransaction:
        ...


class ProviderHandle(abc.ABC):
    """An established wallet connection shared by every operation of a session."""

    @abc.abstractmethod
    async def get_network(self) -> NetworkInfo:
        ...

    @abc.abstractmethod
    def reader(self) -> Accessor:
        ...

    @abc.abstractmethod
    async def get_signer(self) -> SigningAccessor:
        ...


class WalletProvider(abc.ABC):
    @abc.abstractmethod
    async def connect(self) -> ProviderHandle:
        """Open the wallet connection, prompting the user if needed.

        Raises `ConnectionRejected` if the user declines.
        """

    async def close(self) -> None:
        """Optional hook for providers that hold resources."""
        return None
