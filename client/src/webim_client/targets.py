from __future__ import annotations

import logging
from typing import Callable, Optional

from .session import Session

logger = logging.getLogger(__name__)

HistoryTrigger = Callable[[str, str], None]


class TargetResolver:
    """Decides who the session is talking to.

    Users are told their peer by the gateway (a SYSTEM assignment, which always
    wins). Agents bind to the sender of the first message that arrives while
    they have no peer, and stay bound until a new assignment or logout.
    Every bind, including a repeated assignment, triggers one history reload.
    """

    def __init__(self, session: Session, on_target_changed: HistoryTrigger) -> None:
        self._session = session
        self._on_target_changed = on_target_changed

    @property
    def target_id(self) -> Optional[str]:
        return self._session.target_id

    def on_system_frame(self, assigned_peer: Optional[str]) -> bool:
        # A repeated assignment of the current peer still rebinds and reloads.
        if not assigned_peer:
            return False
        self._bind(assigned_peer, reason="assigned")
        return True

    def on_receive_frame(self, from_id: str) -> bool:
        if not self._session.is_agent or self._session.target_id is not None:
            return False
        self._bind(from_id, reason="first message")
        return True

    def _bind(self, peer: str, *, reason: str) -> None:
        previous = self._session.target_id
        self._session.target_id = peer
        logger.info("Conversation target %s -> %s (%s)", previous or "-", peer, reason)
        self._on_target_changed(self._session.local_id, peer)
