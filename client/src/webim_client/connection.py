"""Websocket lifecycle, heartbeat and reconnect policy for one session."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

import aiohttp

from . import frames
from .config import ClientConfig
from .frames import Frame, HeartbeatFrame, ProtocolError
from .session import ConnectionState, Session
from .timers import OneShotTimer, PeriodicTimer

logger = logging.getLogger(__name__)

FrameConsumer = Callable[[Frame], None]
StatusObserver = Callable[[bool], None]

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class NotConnected(Exception):
    """Raised by :meth:`ConnectionManager.send` when the socket is not open."""


class TransportError(Exception):
    """Socket-level failure. Recovered by reconnecting, never raised to callers."""


class ConnectionManager:
    """Owns the websocket for a :class:`Session`.

    Lifecycle: ``IDLE -> CONNECTING -> OPEN -> CLOSED -> (delay) -> CONNECTING``.
    The AUTH frame returned by ``handshake`` is written before the state
    becomes ``OPEN``; since :meth:`send` refuses frames outside ``OPEN`` no
    other traffic can precede it on any connection epoch.

    The heartbeat timer only runs while ``OPEN`` and the reconnect timer only
    while ``CLOSED``; each transition cancels the other one.
    """

    def __init__(
        self,
        session: Session,
        http: aiohttp.ClientSession,
        *,
        handshake: Callable[[], Frame],
        on_frame: FrameConsumer,
        config: ClientConfig | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._session = session
        self._http = http
        self._handshake = handshake
        self._on_frame = on_frame
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._epoch = 0
        self._stopped = True
        self._delay_s = self.config.reconnect_delay_s
        self._observers: List[StatusObserver] = []
        self._heartbeat = PeriodicTimer(self.config.heartbeat_interval_s, self._send_heartbeat, name="heartbeat")
        self._reconnect = OneShotTimer(self._reconnect_now, name="reconnect")
        self.reconnects_scheduled = 0

    @property
    def state(self) -> ConnectionState:
        return self._session.state

    @property
    def is_open(self) -> bool:
        return self._session.state is ConnectionState.OPEN and self._ws is not None and not self._ws.closed

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat.active

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect.active

    def add_status_observer(self, observer: StatusObserver) -> None:
        self._observers.append(observer)

    def remove_status_observer(self, observer: StatusObserver) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            return

    async def connect(self) -> bool:
        """Open the connection and keep it open until :meth:`close`.

        Returns whether the first attempt succeeded. A failed attempt is not
        an error: the reconnect timer is armed and retries indefinitely.
        """

        if not self._session.alive:
            raise RuntimeError("session has been closed")
        self._stopped = False
        return await self._open()

    async def send(self, frame: Frame) -> None:
        ws = self._ws
        if self._session.state is not ConnectionState.OPEN or ws is None or ws.closed:
            raise NotConnected(f"cannot send {frame.tag}: connection is {self._session.state.value}")
        try:
            await ws.send_str(frames.encode(frame))
        except _TRANSPORT_ERRORS as exc:
            self._transport_closed(self._epoch, TransportError(str(exc) or exc.__class__.__name__))
            raise NotConnected(f"connection lost while sending {frame.tag}") from exc

    async def close(self) -> None:
        """Tear down for logout: cancel both timers and abandon reconnecting."""

        self._stopped = True
        self._epoch += 1
        self._reconnect.cancel()
        self._heartbeat.cancel()
        reader, self._reader = self._reader, None
        ws, self._ws = self._ws, None
        was_idle = self._session.state is ConnectionState.IDLE
        self._session.state = ConnectionState.IDLE
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
        if ws is not None and not ws.closed:
            await ws.close()
        if not was_idle:
            logger.info("Chat connection closed for %s", self._session.local_id)
            self._notify(False)

    async def _open(self) -> bool:
        if self._stopped or self._session.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return self._session.state is ConnectionState.OPEN
        self._reconnect.cancel()
        self._epoch += 1
        epoch = self._epoch
        self._session.state = ConnectionState.CONNECTING
        logger.info("Connecting to chat gateway at %s", self.config.ws_url)

        try:
            ws = await self._http.ws_connect(self.config.ws_url)
        except _TRANSPORT_ERRORS as exc:
            self._transport_closed(epoch, TransportError(str(exc) or exc.__class__.__name__))
            return False

        if epoch != self._epoch or self._stopped:
            # logged out while the handshake was in flight
            await ws.close()
            return False

        try:
            await ws.send_str(frames.encode(self._handshake()))
        except _TRANSPORT_ERRORS as exc:
            await ws.close()
            self._transport_closed(epoch, TransportError(str(exc) or exc.__class__.__name__))
            return False

        self._ws = ws
        self._session.state = ConnectionState.OPEN
        self._delay_s = self.config.reconnect_delay_s
        self._reconnect.cancel()
        self._heartbeat.cancel()
        self._heartbeat.start()
        self._reader = asyncio.get_running_loop().create_task(self._read_loop(ws, epoch), name="chat-reader")
        logger.info("Connected to chat gateway as %s (%s)", self._session.local_id, self._session.role.name.lower())
        self._notify(True)
        return True

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse, epoch: int) -> None:
        error: Optional[TransportError] = None
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._deliver(msg.data, epoch)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    exc = ws.exception()
                    error = TransportError(str(exc) if exc else "websocket error")
                    break
                else:
                    logger.debug("Ignoring websocket message of type %s", msg.type)
        except _TRANSPORT_ERRORS as exc:
            error = TransportError(str(exc) or exc.__class__.__name__)
        finally:
            # also reached when the epoch is abandoned and this task cancelled
            if not ws.closed:
                await ws.close()
        self._transport_closed(epoch, error)

    def _deliver(self, raw: str, epoch: int) -> None:
        if epoch != self._epoch:
            logger.debug("Dropping frame from stale connection epoch %d", epoch)
            return
        try:
            frame = frames.decode(raw)
        except ProtocolError as exc:
            logger.warning("Dropping undecodable frame: %s", exc)
            return
        try:
            self._on_frame(frame)
        except Exception:
            logger.exception("Inbound %s frame handler failed", frame.tag)

    def _transport_closed(self, epoch: int, error: Optional[TransportError]) -> None:
        if epoch != self._epoch or self._stopped:
            return
        if self._session.state is ConnectionState.CLOSED and self._reconnect.active:
            return
        self._heartbeat.cancel()
        self._ws = None
        reader, self._reader = self._reader, None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
        self._session.state = ConnectionState.CLOSED
        if error is not None:
            logger.info("Chat connection lost (%s)", error)
        else:
            logger.info("Chat connection closed by peer")
        self._schedule_reconnect()
        self._notify(False)

    def _schedule_reconnect(self) -> None:
        if not self._reconnect.schedule(self._delay_s):
            return
        self.reconnects_scheduled += 1
        logger.info("Reconnecting in %.1fs", self._delay_s)
        self._delay_s = self.config.next_reconnect_delay(self._delay_s)

    async def _reconnect_now(self) -> None:
        if self._stopped:
            return
        await self._open()

    async def _send_heartbeat(self) -> None:
        if not self.is_open:
            return
        try:
            await self.send(HeartbeatFrame())
        except NotConnected:
            logger.debug("Heartbeat skipped; connection not open")

    def _notify(self, online: bool) -> None:
        for observer in list(self._observers):
            try:
                observer(online)
            except Exception:
                logger.exception("Connection status observer failed")
