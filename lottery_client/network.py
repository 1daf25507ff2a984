from __future__ import annotations

import logging
from typing import Optional, TypeVar

from .errors import LotteryClientError, ReadFailed, WrongNetwork
from .notices import Notifier
from .wallet.base import Accessor

AccessorT = TypeVar("AccessorT", bound=Accessor)


class NetworkGuard:
    """Rejects accessors whose wallet is not on the required chain."""

    def __init__(
        self,
        required_chain_id: int,
        notifier: Notifier,
        network_name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._required_chain_id = required_chain_id
        self._network_name = network_name or f"chain {required_chain_id}"
        self._notifier = notifier
        self._logger = logger or logging.getLogger("lotteryclient.network")

    @property
    def required_chain_id(self) -> int:
        return self._required_chain_id

    async def validate(self, accessor: AccessorT) -> AccessorT:
        try:
            network = await accessor.get_network()
        except LotteryClientError:
            raise
        except Exception as exc:
            raise ReadFailed(f"Could not read the wallet network: {exc}") from exc
        if network.chain_id != self._required_chain_id:
            self._logger.warning(
                "Wallet is on chain %s; required chain is %s (%s)",
                network.chain_id,
                self._required_chain_id,
                self._network_name,
            )
            self._notifier.alert(f"Change the network to {self._network_name.capitalize()}")
            raise WrongNetwork(self._required_chain_id, network.chain_id)
        return accessor
