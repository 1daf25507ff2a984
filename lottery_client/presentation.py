from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .state import SessionState
from .types import LotteryPhase


class ActionKind(str, Enum):
    CONNECT = "connect"
    LOADING = "loading"
    ASSIGN_WINNER = "assign_winner"
    PAUSED = "paused"
    WITHDRAW = "withdraw"
    THANK_YOU = "thank_you"
    ENTER = "enter"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    label: str
    description: Optional[str] = None
    # Session operation the control triggers; None for notices.
    operation: Optional[str] = None

    @property
    def is_notice(self) -> bool:
        return self.operation is None


CONNECT_ACTION = Action(ActionKind.CONNECT, "Connect your wallet", operation="connect")
LOADING_ACTION = Action(ActionKind.LOADING, "Loading...")
ASSIGN_WINNER_ACTION = Action(ActionKind.ASSIGN_WINNER, "Assign winner!", operation="assign_winner")
PAUSED_NOTICE = Action(ActionKind.PAUSED, "Lottery paused, come back later!")
WITHDRAW_ACTION = Action(
    ActionKind.WITHDRAW,
    "Withdraw prize money",
    description="Congrats you are a winner!",
    operation="withdraw_prize_money",
)
THANK_YOU_NOTICE = Action(ActionKind.THANK_YOU, "Thank you for participating!")
ENTER_ACTION = Action(ActionKind.ENTER, "Try your luck!", operation="submit_entry")


def resolve(state: SessionState) -> Action:
    """Pick the single control to show for ``state``.

    Rules are checked in order and the first match wins: an owner who can
    assign a winner sees that before anything participant-facing, and a
    paused lottery hides participation prompts even for a winner.
    """
    if not state.connected:
        return CONNECT_ACTION
    if state.pending:
        return LOADING_ACTION
    if state.is_owner and state.entry_count >= state.min_entry_count:
        return ASSIGN_WINNER_ACTION
    if state.phase == LotteryPhase.PAUSED:
        return PAUSED_NOTICE
    if state.is_winner:
        return WITHDRAW_ACTION
    if state.has_entered:
        return THANK_YOU_NOTICE
    return ENTER_ACTION
