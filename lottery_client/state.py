from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .types import LotteryPhase, same_address


@dataclass
class SessionState:
    connected: bool = False
    phase: LotteryPhase = LotteryPhase.OPEN
    entry_count: int = 0
    min_entry_count: int = 1
    is_owner: bool = False
    has_entered: bool = False
    is_winner: bool = False
    pending: bool = False
    address: Optional[str] = None

    def update(self, **changes: Any) -> bool:
        """Apply field changes; return True if anything differed."""
        known = {f.name for f in fields(self)}
        changed = False
        for key, value in changes.items():
            if key not in known:
                raise AttributeError(f"SessionState has no field {key!r}")
            if getattr(self, key) != value:
                setattr(self, key, value)
                changed = True
        return changed

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.name
        return data


# The contract records at most one entry per address.
def has_entered_from(entry_count: int) -> bool:
    return entry_count == 1


def is_winner_from(prize_amount: int) -> bool:
    return prize_amount > 0


def is_owner_from(owner: Optional[str], address: Optional[str]) -> bool:
    return same_address(owner, address)
