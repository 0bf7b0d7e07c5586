"""Wire frames exchanged with the chat gateway and their JSON codec."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Union


class ProtocolError(ValueError):
    """Raised when an inbound frame cannot be decoded."""


class Role(IntEnum):
    USER = 1
    AGENT = 2


class MessageKind(IntEnum):
    TEXT = 1
    IMAGE = 3

    @classmethod
    def from_wire(cls, value: object) -> "MessageKind":
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return cls.TEXT


TAG_AUTH = "AUTH"
TAG_HEARTBEAT = "HEARTBEAT"
TAG_SEND = "SEND"
TAG_SYSTEM = "SYSTEM"
TAG_RECEIVE = "RECEIVE"


@dataclass(frozen=True)
class AuthFrame:
    id: str
    role: Role

    tag = TAG_AUTH


@dataclass(frozen=True)
class HeartbeatFrame:
    tag = TAG_HEARTBEAT


@dataclass(frozen=True)
class SendFrame:
    to_id: str
    content: str
    kind: MessageKind = MessageKind.TEXT

    tag = TAG_SEND


@dataclass(frozen=True)
class SystemFrame:
    content: str
    assigned_peer: Optional[str] = None

    tag = TAG_SYSTEM


@dataclass(frozen=True)
class ReceiveFrame:
    from_id: str
    content: str
    kind: MessageKind = MessageKind.TEXT
    timestamp: Optional[int] = None

    tag = TAG_RECEIVE


@dataclass(frozen=True)
class UnknownFrame:
    """A well-formed frame whose tag this client does not understand."""

    tag: str


Frame = Union[AuthFrame, HeartbeatFrame, SendFrame, SystemFrame, ReceiveFrame, UnknownFrame]


def _identity(value: object, field: str) -> str:
    # The gateway may serialize identities as JSON numbers.
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ProtocolError(f"{field} must be a string or integer identity")
    text = str(value)
    if not text:
        raise ProtocolError(f"{field} must not be empty")
    return text


def to_payload(frame: Frame) -> Dict[str, Any]:
    if isinstance(frame, AuthFrame):
        return {"type": TAG_AUTH, "id": frame.id, "userType": int(frame.role)}
    if isinstance(frame, HeartbeatFrame):
        return {"type": TAG_HEARTBEAT}
    if isinstance(frame, SendFrame):
        return {
            "type": TAG_SEND,
            "toId": frame.to_id,
            "content": frame.content,
            "msgType": int(frame.kind),
        }
    if isinstance(frame, SystemFrame):
        payload: Dict[str, Any] = {"type": TAG_SYSTEM, "content": frame.content}
        if frame.assigned_peer is not None:
            payload["agentId"] = frame.assigned_peer
        return payload
    if isinstance(frame, ReceiveFrame):
        payload = {
            "type": TAG_RECEIVE,
            "fromId": frame.from_id,
            "content": frame.content,
            "msgType": int(frame.kind),
        }
        if frame.timestamp is not None:
            payload["timestamp"] = frame.timestamp
        return payload
    raise TypeError(f"cannot encode {type(frame).__name__}")


def encode(frame: Frame) -> str:
    return json.dumps(to_payload(frame), separators=(",", ":"))


def from_payload(payload: object) -> Frame:
    """Build a frame from an already-parsed JSON object.

    Unrecognized tags yield :class:`UnknownFrame` so that newer gateways can
    introduce frame types without breaking older clients. Recognized tags
    with missing or mistyped fields raise :class:`ProtocolError`.
    """

    if not isinstance(payload, dict):
        raise ProtocolError("frame must be a JSON object")
    tag = payload.get("type")
    if not isinstance(tag, str) or not tag:
        raise ProtocolError("frame type missing")

    if tag == TAG_SYSTEM:
        content = payload.get("content", "")
        if not isinstance(content, str):
            raise ProtocolError("SYSTEM content must be a string")
        peer = payload.get("agentId")
        return SystemFrame(
            content=content,
            assigned_peer=None if peer is None else _identity(peer, "agentId"),
        )
    if tag == TAG_RECEIVE:
        content = payload.get("content")
        if not isinstance(content, str):
            raise ProtocolError("RECEIVE content must be a string")
        timestamp = payload.get("timestamp")
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, int)):
            timestamp = None
        return ReceiveFrame(
            from_id=_identity(payload.get("fromId"), "fromId"),
            content=content,
            kind=MessageKind.from_wire(payload.get("msgType", MessageKind.TEXT)),
            timestamp=timestamp,
        )
    if tag == TAG_AUTH:
        try:
            role = Role(payload.get("userType"))
        except ValueError as exc:
            raise ProtocolError("AUTH userType must be 1 or 2") from exc
        return AuthFrame(id=_identity(payload.get("id"), "id"), role=role)
    if tag == TAG_HEARTBEAT:
        return HeartbeatFrame()
    if tag == TAG_SEND:
        content = payload.get("content")
        if not isinstance(content, str):
            raise ProtocolError("SEND content must be a string")
        return SendFrame(
            to_id=_identity(payload.get("toId"), "toId"),
            content=content,
            kind=MessageKind.from_wire(payload.get("msgType", MessageKind.TEXT)),
        )
    return UnknownFrame(tag=tag)


def decode(raw: Union[str, bytes]) -> Frame:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError("frame is not valid JSON") from exc
    return from_payload(payload)
