"""Top-level chat client: one Session plus the components that act on it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Optional, Union

import aiohttp

from .auth import AuthHandshake
from .composer import NotSendableError, OutboundComposer
from .config import ClientConfig
from .connection import ConnectionManager, NotConnected
from .dispatcher import MessageDispatcher
from .frames import Role
from .history import HistorySync
from .http_api import ChatApi
from .renderer import Renderer
from .session import SIDE_MINE, ChatMessage, Session
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class ChatClient:
    """Wires a logged-in :class:`Session` to the transport and the renderer.

    A client hosts at most one session at a time; logging in again first logs
    the previous session out. The aiohttp session is created lazily unless
    one is supplied, and is only closed by :meth:`close` when owned.
    """

    def __init__(
        self,
        renderer: Renderer,
        *,
        config: ClientConfig | None = None,
        http: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.renderer = renderer
        self._http = http
        self._owns_http = http is None
        self.session: Optional[Session] = None
        self.api: Optional[ChatApi] = None
        self.connection: Optional[ConnectionManager] = None
        self.resolver: Optional[TargetResolver] = None
        self.dispatcher: Optional[MessageDispatcher] = None
        self.composer: Optional[OutboundComposer] = None
        self.history: Optional[HistorySync] = None

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def login(self, local_id: str, role: Union[Role, int]) -> Session:
        local_id = str(local_id).strip()
        if not local_id:
            raise ValueError("local_id is required")
        if self.session is not None:
            await self.logout()
        if self._http is None:
            self._http = aiohttp.ClientSession()

        session = Session(local_id=local_id, role=Role(role))
        api = ChatApi(self._http, self.config.http_base_url)
        history = HistorySync(session, api.history, self.renderer, limit=self.config.history_limit)
        resolver = TargetResolver(session, history.trigger)
        dispatcher = MessageDispatcher(session, resolver, self.renderer)
        connection = ConnectionManager(
            session,
            self._http,
            handshake=AuthHandshake(session),
            on_frame=dispatcher.dispatch,
            config=self.config,
        )
        connection.add_status_observer(self.renderer.set_connection_status)

        self.session = session
        self.api = api
        self.history = history
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.composer = OutboundComposer(session)
        self.connection = connection
        logger.info("Logged in as %s (%s)", local_id, session.role.name.lower())
        await connection.connect()
        return session

    async def logout(self) -> None:
        session, connection = self.session, self.connection
        if session is None:
            return
        self.session = None
        self.connection = None
        if connection is not None:
            await connection.close()
        session.end()
        logger.info("Logged out %s", session.local_id)

    async def close(self) -> None:
        await self.logout()
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None

    async def send_text(self, content: str) -> ChatMessage:
        connection = self._require_connection()
        composition = self.composer.compose_text(content)
        await connection.send(composition.frame)
        self.renderer.render_message(composition.echo, SIDE_MINE)
        return composition.echo

    async def send_image(self, file: Union[str, Path, bytes, IO[bytes]], *, filename: str | None = None) -> ChatMessage:
        """Upload ``file`` and send the resulting storage reference as an image.

        Raises :class:`~webim_client.http_api.UploadFailure` without sending
        anything if the upload is rejected.
        """

        connection = self._require_connection()
        session = self.session
        if session.target_id is None:
            raise NotSendableError("no conversation target yet")
        reference = await self.api.upload(file, filename=filename)
        if self.session is not session:
            raise NotConnected("session ended while uploading")
        composition = self.composer.compose_media(reference)
        await connection.send(composition.frame)
        self.renderer.render_message(composition.echo, SIDE_MINE)
        return composition.echo

    async def reload_history(self) -> bool:
        session = self.session
        if session is None or self.history is None:
            return False
        return await self.history.refresh(session.local_id, session.target_id)

    def _require_connection(self) -> ConnectionManager:
        if self.session is None or self.connection is None:
            raise NotConnected("not logged in")
        return self.connection
