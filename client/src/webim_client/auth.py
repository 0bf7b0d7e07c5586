"""Identity assertion sent as the first frame of every connection."""

from __future__ import annotations

from .frames import AuthFrame
from .session import Session


class AuthHandshake:
    """Builds the AUTH frame for a session.

    The assertion is fire-and-forget: the gateway sends no acknowledgement and
    a rejected identity looks exactly like an accepted one from here.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def frame(self) -> AuthFrame:
        return AuthFrame(id=self._session.local_id, role=self._session.role)

    __call__ = frame
