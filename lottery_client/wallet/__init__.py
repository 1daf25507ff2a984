from .base import Accessor, ProviderHandle, SigningAccessor, SubmittedTransaction, WalletProvider
from .memory import InMemoryLottery, InMemoryWalletProvider
from .web3_provider import Web3WalletProvider

__all__ = [
    "Accessor",
    "ProviderHandle",
    "SigningAccessor",
    "SubmittedTransaction",
    "WalletProvider",
    "InMemoryLottery",
    "InMemoryWalletProvider",
    "Web3WalletProvider",
]
