from __future__ import annotations

from dataclasses import dataclass

from .frames import HeartbeatFrame, MessageKind, SendFrame
from .session import ChatMessage, Session, now_ms


class NotSendableError(ValueError):
    """Raised when a message cannot be composed (no content or no target)."""


@dataclass(frozen=True)
class Composition:
    frame: SendFrame
    echo: ChatMessage


class OutboundComposer:
    """Builds outbound frames for user actions.

    Each successful composition carries a local echo of the message so the UI
    can display it without waiting for the gateway.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def compose_text(self, content: str) -> Composition:
        text = (content or "").strip()
        if not text:
            raise NotSendableError("message is empty")
        return self._compose(text, MessageKind.TEXT)

    def compose_media(self, reference: str) -> Composition:
        # Storage references are opaque; they are sent exactly as received.
        if not reference or not reference.strip():
            raise NotSendableError("storage reference is empty")
        return self._compose(reference, MessageKind.IMAGE)

    def compose_heartbeat(self) -> HeartbeatFrame:
        return HeartbeatFrame()

    def _compose(self, content: str, kind: MessageKind) -> Composition:
        target_id = self._session.target_id
        if target_id is None:
            raise NotSendableError("no conversation target yet")
        frame = SendFrame(to_id=target_id, content=content, kind=kind)
        echo = ChatMessage(
            from_id=self._session.local_id,
            to_id=target_id,
            content=content,
            kind=kind,
            timestamp=now_ms(),
        )
        return Composition(frame=frame, echo=echo)
