from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from .http_api import HistoryError
from .renderer import Renderer
from .session import ChatMessage, Session

logger = logging.getLogger(__name__)

HistoryFetcher = Callable[[str, str], Awaitable[List[ChatMessage]]]


class HistorySync:
    """Replaces the visible transcript with the conversation's recent history.

    Every refresh is a full replace of the transcript, so repeated triggers
    for the same target converge on the same view. Results that arrive after
    logout, or after the target moved on, are discarded.
    """

    def __init__(self, session: Session, fetch: HistoryFetcher, renderer: Renderer, *, limit: int = 100) -> None:
        self._session = session
        self._fetch = fetch
        self._renderer = renderer
        self.limit = limit
        self._pending: Set[asyncio.Task] = set()

    async def refresh(self, local_id: str, target_id: Optional[str]) -> bool:
        """Fetch and apply history. Returns whether the transcript was replaced."""

        if not target_id:
            return False
        try:
            messages = await self._fetch(local_id, target_id)
        except HistoryError as exc:
            logger.warning("Loading history with %s failed: %s", target_id, exc)
            return False
        if not self._applies_to(local_id, target_id):
            logger.debug("Discarding stale history for %s", target_id)
            return False
        window = messages[-self.limit :] if self.limit else list(messages)
        try:
            self._renderer.replace_transcript(window)
        except Exception:
            logger.exception("Rendering history with %s failed", target_id)
            return False
        return True

    def trigger(self, local_id: str, target_id: str) -> asyncio.Task:
        """Run :meth:`refresh` in the background and track the task."""

        task = asyncio.get_running_loop().create_task(self.refresh(local_id, target_id), name="history-refresh")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _applies_to(self, local_id: str, target_id: str) -> bool:
        session = self._session
        return session.alive and session.local_id == local_id and session.target_id == target_id
