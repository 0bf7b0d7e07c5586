"""Renderer port consumed by the session layer, plus a plain-text implementation."""

from __future__ import annotations

import datetime as _dt
import sys
from typing import Iterable, Optional, TextIO

from .frames import MessageKind
from .session import SIDE_MINE, ChatMessage, side_for


class Renderer:
    """Interface a UI implements to display the conversation.

    The default methods do nothing so front-ends only override what they
    display.
    """

    def render_notice(self, text: str) -> None:
        pass

    def render_message(self, message: ChatMessage, side: str) -> None:
        pass

    def replace_transcript(self, messages: Iterable[ChatMessage]) -> None:
        pass

    def set_connection_status(self, online: bool) -> None:
        pass


def _format_time(timestamp: Optional[int]) -> str:
    if timestamp is None:
        return _dt.datetime.now().strftime("%H:%M:%S")
    return _dt.datetime.fromtimestamp(timestamp / 1000).strftime("%H:%M:%S")


def format_message(message: ChatMessage, side: str) -> str:
    sender = "me" if side == SIDE_MINE else message.from_id
    body = f"[image] {message.content}" if message.kind is MessageKind.IMAGE else message.content
    return f"{_format_time(message.timestamp)} {sender}: {body}"


class ConsoleRenderer(Renderer):
    """Writes the conversation to a text stream, one line per event."""

    def __init__(self, local_id: str, output: TextIO | None = None) -> None:
        self.local_id = local_id
        self._output = output or sys.stdout
        self.online: Optional[bool] = None

    def _write(self, line: str) -> None:
        self._output.write(line + "\n")
        self._output.flush()

    def render_notice(self, text: str) -> None:
        self._write(f"* {text}")

    def render_message(self, message: ChatMessage, side: str) -> None:
        self._write(format_message(message, side))

    def replace_transcript(self, messages: Iterable[ChatMessage]) -> None:
        self._write("--- history ---")
        for message in messages:
            self._write(format_message(message, side_for(message, self.local_id)))
        self._write("---------------")

    def set_connection_status(self, online: bool) -> None:
        if online == self.online:
            return
        self.online = online
        self._write("* online" if online else "* offline")
