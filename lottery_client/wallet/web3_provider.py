from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from ..errors import ConnectionRejected, TransactionFailed
from ..types import ContractRef, NetworkInfo
from .base import Accessor, ProviderHandle, SigningAccessor, SubmittedTransaction, WalletProvider

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001


class Web3Transaction(SubmittedTransaction):
    def __init__(self, web3: Web3, tx_hash: str, confirmations: int = 1, poll_latency: float = 2) -> None:
        self._web3 = web3
        self.tx_hash = tx_hash
        self._confirmations = max(confirmations, 1)
        self._poll_latency = poll_latency

    async def wait(self) -> None:
        await asyncio.to_thread(self._wait_sync)

    def _wait_sync(self) -> None:
        web3 = self._web3
        while True:
            try:
                receipt = web3.eth.wait_for_transaction_receipt(
                    self.tx_hash, timeout=120, poll_latency=self._poll_latency
                )
                break
            except TimeExhausted:
                # Confirmation has no deadline; keep waiting for the chain.
                continue
        if receipt["status"] != 1:
            raise TransactionFailed(f"Transaction reverted: {self.tx_hash}", tx_hash=self.tx_hash)

        target_block = receipt["blockNumber"] + self._confirmations - 1
        while web3.eth.block_number < target_block:
            time.sleep(self._poll_latency)


class Web3Accessor(Accessor):
    def __init__(self, web3: Web3) -> None:
        self._web3 = web3
        self._contracts: Dict[str, Contract] = {}

    def _contract(self, contract: ContractRef) -> Contract:
        address = Web3.to_checksum_address(contract.address)
        if address not in self._contracts:
            self._contracts[address] = self._web3.eth.contract(address=address, abi=list(contract.abi))
        return self._contracts[address]

    async def get_network(self) -> NetworkInfo:
        chain_id = await asyncio.to_thread(lambda: self._web3.eth.chain_id)
        return NetworkInfo(chain_id=int(chain_id))

    async def call(self, contract: ContractRef, function: str, *args: Any) -> Any:
        fn = getattr(self._contract(contract).functions, function)(*args)
        return await asyncio.to_thread(fn.call)


class Web3SigningAccessor(Web3Accessor, SigningAccessor):
    def __init__(
        self,
        web3: Web3,
        address: str,
        account: Optional[LocalAccount] = None,
        gas_limit: int = 250000,
        confirmations: int = 1,
    ) -> None:
        super().__init__(web3)
        self._address = Web3.to_checksum_address(address)
        self._account = account
        self._gas_limit = gas_limit
        self._confirmations = confirmations

    async def get_address(self) -> str:
        return self._address

    async def transact(
        self, contract: ContractRef, function: str, *args: Any, value: int = 0
    ) -> SubmittedTransaction:
        fn = getattr(self._contract(contract).functions, function)(*args)
        tx_params: Dict[str, Any] = {"from": self._address, "value": int(value)}
        if self._account is None:
            # The wallet endpoint signs and may prompt the user.
            tx_hash = await asyncio.to_thread(fn.transact, tx_params)
        else:
            tx_hash = await asyncio.to_thread(self._send_signed, fn, tx_params)
        return Web3Transaction(self._web3, Web3.to_hex(tx_hash), confirmations=self._confirmations)

    def _send_signed(self, fn, tx_params: Dict[str, Any]):
        web3 = self._web3
        try:
            gas_estimate = fn.estimate_gas(tx_params)
        except Exception:  # pragma: no cover - rely on conservative gas limit if estimation fails
            gas_estimate = self._gas_limit

        tx = fn.build_transaction(
            {
                **tx_params,
                "nonce": web3.eth.get_transaction_count(self._address),
                "gas": max(int(math.ceil(gas_estimate * 1.2)), self._gas_limit),
                "gasPrice": web3.eth.gas_price,
                "chainId": web3.eth.chain_id,
            }
        )
        signed = self._account.sign_transaction(tx)
        return web3.eth.send_raw_transaction(signed.raw_transaction)


class Web3ProviderHandle(ProviderHandle):
    def __init__(
        self,
        web3: Web3,
        account: Optional[LocalAccount] = None,
        gas_limit: int = 250000,
        confirmations: int = 1,
    ) -> None:
        self._web3 = web3
        self._account = account
        self._gas_limit = gas_limit
        self._confirmations = confirmations
        self._reader = Web3Accessor(web3)

    async def get_network(self) -> NetworkInfo:
        return await self._reader.get_network()

    def reader(self) -> Accessor:
        return self._reader

    async def get_signer(self) -> SigningAccessor:
        if self._account is not None:
            address = self._account.address
        else:
            try:
                accounts = await asyncio.to_thread(lambda: self._web3.eth.accounts)
            except Exception as exc:
                raise ConnectionRejected(f"Could not read wallet accounts: {exc}") from exc
            if not accounts:
                raise ConnectionRejected("Wallet has no selected account")
            address = accounts[0]
        return Web3SigningAccessor(
            self._web3,
            address,
            account=self._account,
            gas_limit=self._gas_limit,
            confirmations=self._confirmations,
        )


class Web3WalletProvider(WalletProvider):
    """Wallet reached over JSON-RPC, or a local key when one is configured."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 10.0,
        private_key: Optional[str] = None,
        gas_limit: int = 250000,
        confirmations: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._timeout_seconds = timeout_seconds
        self._private_key = private_key
        self._gas_limit = gas_limit
        self._confirmations = confirmations
        self._logger = logger or logging.getLogger("lotteryclient.wallet")

    async def connect(self) -> ProviderHandle:
        return await asyncio.to_thread(self._connect_sync)

    def _connect_sync(self) -> ProviderHandle:
        web3 = Web3(Web3.HTTPProvider(self._rpc_url, request_kwargs={"timeout": self._timeout_seconds}))
        if web3.is_connected() is False:
            raise ConnectionRejected(f"Cannot reach wallet endpoint: {self._rpc_url}")

        # For PoA testnets (e.g. Rinkeby, Hardhat) insert the middleware.
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        account: Optional[LocalAccount] = None
        if self._private_key:
            account = Account.from_key(self._private_key)
            self._logger.info("Using local signer %s", account.address)
        else:
            self._request_accounts(web3)

        return Web3ProviderHandle(
            web3, account=account, gas_limit=self._gas_limit, confirmations=self._confirmations
        )

    def _request_accounts(self, web3: Web3) -> None:
        try:
            response = web3.provider.make_request("eth_requestAccounts", [])
        except Exception as exc:
            raise ConnectionRejected(f"Wallet did not answer the account request: {exc}") from exc
        error = response.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            if code == USER_REJECTED_CODE:
                raise ConnectionRejected("User rejected the wallet connection request")
            raise ConnectionRejected(f"Wallet refused to share accounts: {message}")
        accounts = response.get("result") or []
        if not accounts:
            raise ConnectionRejected("Wallet returned no accounts")
        self._logger.info("Wallet connected with account %s", accounts[0])
