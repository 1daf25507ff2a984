from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Sequence

from .errors import UnexpectedResponse

UINT256_MAX = 2**256 - 1


class LotteryPhase(IntEnum):
    OPEN = 0
    PAUSED = 1


@dataclass(frozen=True)
class NetworkInfo:
    chain_id: int


@dataclass(frozen=True)
class ContractRef:
    """Address and ABI of the lottery contract, treated as opaque by the client."""

    address: str
    abi: Sequence[dict[str, Any]]

    @classmethod
    def from_artifact(cls, address: str, path: str) -> "ContractRef":
        artifact_path = pathlib.Path(path)
        if not artifact_path.exists():
            raise FileNotFoundError(f"Contract artifact not found: {artifact_path}")
        with artifact_path.open("r", encoding="utf-8") as fh:
            artifact = json.load(fh)
        # Accept both a compiler artifact and a bare ABI list.
        abi = artifact.get("abi") if isinstance(artifact, dict) else artifact
        if not isinstance(abi, list):
            raise ValueError("Invalid artifact file: missing ABI")
        return cls(address=address, abi=tuple(abi))


def normalize_address(address: str) -> str:
    return address.strip().lower()


def same_address(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return normalize_address(left) == normalize_address(right)


def to_uint(value: Any, field: str) -> int:
    """Convert a contract integer into a plain ``int`` or fail with UnexpectedResponse."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnexpectedResponse(f"{field}: expected an integer, got {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise UnexpectedResponse(f"{field}: value out of uint256 range: {value}")
    return int(value)
