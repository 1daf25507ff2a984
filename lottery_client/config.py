from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    return float(value)


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


@dataclass(frozen=True)
class ContractSettings:
    address: str
    abi_path: str = "artifacts/contracts/Lottery.sol/Lottery.json"
    gas_limit: int = 250000
    confirmations: int = 1


@dataclass(frozen=True)
class ClientSettings:
    wallet_rpc_url: str = "http://127.0.0.1:1248"
    private_key: Optional[str] = None
    rpc_timeout_seconds: float = 10.0
    required_chain_id: int = 4
    network_name: str = "rinkeby"
    poll_interval_seconds: float = 5
    entry_fee_ether: Decimal = Decimal("0.01")
    contract: ContractSettings = ContractSettings(address="0x" + "0" * 40)


def load_from_environment() -> ClientSettings:
    contract = ContractSettings(
        address=_require_env("CONTRACT__ADDRESS"),
        abi_path=os.getenv("CONTRACT__ABI_PATH", "artifacts/contracts/Lottery.sol/Lottery.json"),
        gas_limit=_int_from_env(os.getenv("CONTRACT__GAS_LIMIT"), 250000),
        confirmations=_int_from_env(os.getenv("CONTRACT__CONFIRMATIONS"), 1),
    )

    return ClientSettings(
        wallet_rpc_url=os.getenv("WALLET_RPC_URL", "http://127.0.0.1:1248"),
        private_key=os.getenv("WALLET_PRIVATE_KEY") or None,
        rpc_timeout_seconds=_float_from_env(os.getenv("RPC_TIMEOUT_SECONDS"), 10.0),
        required_chain_id=_int_from_env(os.getenv("REQUIRED_CHAIN_ID"), 4),
        network_name=os.getenv("NETWORK_NAME", "rinkeby"),
        poll_interval_seconds=_float_from_env(os.getenv("POLL_INTERVAL_SECONDS"), 5),
        entry_fee_ether=Decimal(os.getenv("ENTRY_FEE_ETHER", "0.01")),
        contract=contract,
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> ClientSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
