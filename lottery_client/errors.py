from __future__ import annotations

from typing import Optional


class LotteryClientError(Exception):
    """Base class for failures surfaced by the lottery client."""


class ConnectionRejected(LotteryClientError):
    """The wallet refused (or could not be asked) to share an account."""


class WrongNetwork(LotteryClientError):
    def __init__(self, expected: int, actual: Optional[int]) -> None:
        super().__init__(f"Wallet is on chain {actual}, expected chain {expected}")
        self.expected = expected
        self.actual = actual


class ReadFailed(LotteryClientError):
    """A contract read could not be completed; state stays at its last value."""


class UnexpectedResponse(ReadFailed):
    """The contract answered with a value the client cannot interpret."""


class TransactionFailed(LotteryClientError):
    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
