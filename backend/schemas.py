from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from lottery_client.presentation import Action
from lottery_client.state import SessionState


class ActionView(BaseModel):
    kind: str
    label: str
    description: Optional[str] = None
    operation: Optional[str] = Field(None, description="Operation to POST to /session/actions/<operation>.")

    @classmethod
    def from_action(cls, action: Action) -> "ActionView":
        return cls(
            kind=action.kind.value,
            label=action.label,
            description=action.description,
            operation=action.operation,
        )


class SessionView(BaseModel):
    connected: bool
    address: Optional[str] = None
    entry_count: int
    min_entry_count: int
    phase: str
    pending: bool
    action: ActionView
    notices: List[str] = Field(default_factory=list)

    @classmethod
    def build(cls, state: SessionState, action: Action, notices: List[str]) -> "SessionView":
        return cls(
            connected=state.connected,
            address=state.address,
            entry_count=state.entry_count,
            min_entry_count=state.min_entry_count,
            phase=state.phase.name,
            pending=state.pending,
            action=ActionView.from_action(action),
            notices=notices,
        )
