from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .frames import MessageKind, Role

SIDE_MINE = "mine"
SIDE_OTHER = "other"


class ConnectionState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChatMessage:
    from_id: str
    to_id: str
    content: str
    kind: MessageKind = MessageKind.TEXT
    timestamp: Optional[int] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def side_for(message: ChatMessage, local_id: str) -> str:
    return SIDE_MINE if message.from_id == local_id else SIDE_OTHER


@dataclass(eq=False)
class Session:
    """State owned by one logged-in actor.

    ``target_id`` is written only by the target resolver and ``state`` only by
    the connection manager. ``alive`` drops to ``False`` at logout so that
    late asynchronous results can recognise they belong to a dead session.
    """

    local_id: str
    role: Role
    state: ConnectionState = ConnectionState.IDLE
    target_id: Optional[str] = None
    alive: bool = field(default=True)

    @property
    def is_agent(self) -> bool:
        return self.role is Role.AGENT

    def end(self) -> None:
        self.alive = False
        self.target_id = None
        self.state = ConnectionState.IDLE
