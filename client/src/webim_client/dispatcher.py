from __future__ import annotations

import logging

from .frames import Frame, ReceiveFrame, SystemFrame
from .renderer import Renderer
from .session import SIDE_OTHER, ChatMessage, Session
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class MessageDispatcher:
    """Routes decoded inbound frames to the resolver and the renderer."""

    def __init__(self, session: Session, resolver: TargetResolver, renderer: Renderer) -> None:
        self._session = session
        self._resolver = resolver
        self._renderer = renderer

    def dispatch(self, frame: Frame) -> None:
        if not self._session.alive:
            return
        if isinstance(frame, SystemFrame):
            self._on_system(frame)
        elif isinstance(frame, ReceiveFrame):
            self._on_receive(frame)
        else:
            logger.debug("Dropping %s frame", frame.tag)

    __call__ = dispatch

    def _on_system(self, frame: SystemFrame) -> None:
        self._renderer.render_notice(frame.content)
        if frame.assigned_peer is not None:
            self._resolver.on_system_frame(frame.assigned_peer)

    def _on_receive(self, frame: ReceiveFrame) -> None:
        # Resolve first so the renderer sees the current target.
        self._resolver.on_receive_frame(frame.from_id)
        message = ChatMessage(
            from_id=frame.from_id,
            to_id=self._session.local_id,
            content=frame.content,
            kind=frame.kind,
            timestamp=frame.timestamp,
        )
        self._renderer.render_message(message, SIDE_OTHER)
