from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol


class Notifier(Protocol):
    def alert(self, message: str) -> None:
        ...


class LogNotifier:
    """Shows user notices in the log; used by the command line client."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("lotteryclient.notices")

    def alert(self, message: str) -> None:
        self._logger.warning("%s", message)


class NoticeBoard:
    """Keeps the most recent notices so a page can display them."""

    def __init__(self, limit: int = 20) -> None:
        self._messages: Deque[str] = deque(maxlen=limit)

    def alert(self, message: str) -> None:
        self._messages.append(message)

    def recent(self) -> List[str]:
        return list(self._messages)
