from __future__ import annotations

import asyncio
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from aiohttp import WSMsgType, web

from .agents import AgentPool
from .history import MessageLog

logger = logging.getLogger(__name__)

ROLE_USER = 1
ROLE_AGENT = 2
MSG_TEXT = 1
UPLOAD_ERROR = "error"

Identity = Tuple[str, int]


class Runtime:
    def __init__(
        self,
        *,
        log: MessageLog,
        agents: AgentPool,
        upload_dir: Path,
        history_limit: int,
        idle_timeout_s: float,
    ) -> None:
        self.log = log
        self.agents = agents
        self.upload_dir = upload_dir
        self.history_limit = history_limit
        self.idle_timeout_s = idle_timeout_s
        self.connections: Dict[str, web.WebSocketResponse] = {}

    def connection_for(self, user_id: str, role: int) -> web.WebSocketResponse | None:
        return self.connections.get(_channel_key(user_id, role))


RUNTIME_KEY = web.AppKey("runtime", Runtime)


def _channel_key(user_id: str, role: int) -> str:
    return f"{role}:{user_id}"


def _identity(value: object) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    text = str(value).strip()
    return text or None


def _invalid_request(message: str) -> web.Response:
    return web.json_response({"code": "invalid_request", "message": message}, status=400)


async def handle_health(_: web.Request) -> web.Response:
    return web.Response(text="ok")


async def handle_history(request: web.Request) -> web.Response:
    runtime = request.app[RUNTIME_KEY]
    user_id = _identity(request.query.get("userId"))
    target_id = _identity(request.query.get("targetId"))
    if user_id is None or target_id is None:
        return _invalid_request("userId and targetId required")
    records = runtime.log.history(user_id, target_id, limit=runtime.history_limit)
    return web.json_response([record.to_json() for record in records])


async def handle_upload(request: web.Request) -> web.Response:
    runtime = request.app[RUNTIME_KEY]
    try:
        form = await request.post()
    except ValueError:
        return web.Response(text=UPLOAD_ERROR)
    field = form.get("file")
    if not isinstance(field, web.FileField):
        return web.Response(text=UPLOAD_ERROR)
    data = field.file.read()
    if not data:
        return web.Response(text=UPLOAD_ERROR)
    name = f"{uuid.uuid4().hex}_{Path(field.filename or 'upload').name}"
    try:
        runtime.upload_dir.mkdir(parents=True, exist_ok=True)
        (runtime.upload_dir / name).write_bytes(data)
    except OSError:
        logger.exception("Storing upload %s failed", name)
        return web.Response(text=UPLOAD_ERROR)
    # Relative reference; clients resolve it against the gateway origin.
    return web.Response(text=f"/uploads/{name}")


def create_app(
    *,
    history_limit: int = 100,
    upload_dir: str | Path | None = None,
    idle_timeout_s: float = 180.0,
    max_upload_bytes: int = 10 * 1024 * 1024,
) -> web.Application:
    upload_path = Path(upload_dir) if upload_dir is not None else Path(tempfile.mkdtemp(prefix="webim-uploads-"))
    upload_path.mkdir(parents=True, exist_ok=True)
    runtime = Runtime(
        log=MessageLog(),
        agents=AgentPool(),
        upload_dir=upload_path,
        history_limit=history_limit,
        idle_timeout_s=idle_timeout_s,
    )
    app = web.Application(client_max_size=max_upload_bytes)
    app[RUNTIME_KEY] = runtime
    app.router.add_get("/healthz", handle_health)
    app.router.add_get("/api/chat/history", handle_history)
    app.router.add_post("/api/chat/upload", handle_upload)
    app.router.add_static("/uploads/", upload_path)
    app.router.add_get("/ws", websocket_handler)
    return app


async def _send_json(ws: web.WebSocketResponse, payload: Dict[str, Any]) -> bool:
    if ws.closed:
        return False
    try:
        await ws.send_json(payload)
    except ConnectionError:
        logger.debug("Dropping frame for closing socket", exc_info=True)
        return False
    return True


async def _handle_auth(
    runtime: Runtime,
    ws: web.WebSocketResponse,
    frame: Dict[str, Any],
    current: Optional[Identity],
) -> Optional[Identity]:
    user_id = _identity(frame.get("id"))
    role = frame.get("userType")
    if user_id is None or role not in (ROLE_USER, ROLE_AGENT) or isinstance(role, bool):
        logger.warning("Ignoring malformed AUTH frame")
        return current
    if current is not None and current != (user_id, role):
        _disconnect(runtime, ws, current)

    runtime.connections[_channel_key(user_id, role)] = ws
    if role == ROLE_AGENT:
        runtime.agents.agent_online(user_id)
    else:
        agent_id = runtime.agents.assign(user_id)
        if agent_id is not None:
            await _send_json(
                ws,
                {"type": "SYSTEM", "content": f"Agent {agent_id} has been assigned to you", "agentId": agent_id},
            )
        else:
            await _send_json(ws, {"type": "SYSTEM", "content": "No agent is available right now, please try again later"})
    logger.info("Authenticated %s %s", "agent" if role == ROLE_AGENT else "user", user_id)
    return user_id, role


async def _handle_send(runtime: Runtime, frame: Dict[str, Any], identity: Optional[Identity]) -> None:
    if identity is None:
        logger.warning("Ignoring SEND before AUTH")
        return
    from_id, from_role = identity
    to_id = _identity(frame.get("toId"))
    content = frame.get("content")
    msg_type = frame.get("msgType", MSG_TEXT)
    if to_id is None or not isinstance(content, str) or not isinstance(msg_type, int) or isinstance(msg_type, bool):
        logger.warning("Ignoring malformed SEND from %s", from_id)
        return

    record = runtime.log.append(from_id, from_role, to_id, content, msg_type)
    target_role = ROLE_AGENT if from_role == ROLE_USER else ROLE_USER
    target = runtime.connection_for(to_id, target_role)
    delivered = False
    if target is not None:
        delivered = await _send_json(
            target,
            {
                "type": "RECEIVE",
                "fromId": from_id,
                "content": content,
                "msgType": msg_type,
                "timestamp": record.create_time_ms,
            },
        )
    if not delivered:
        logger.info("Recipient %s offline; message %d kept for history", to_id, record.seq)


def _disconnect(runtime: Runtime, ws: web.WebSocketResponse, identity: Identity) -> None:
    user_id, role = identity
    key = _channel_key(user_id, role)
    # A reconnect may already have replaced this socket.
    if runtime.connections.get(key) is not ws:
        return
    del runtime.connections[key]
    if role == ROLE_AGENT:
        runtime.agents.agent_offline(user_id)
    else:
        runtime.agents.release(user_id)
    logger.info("Disconnected %s %s", "agent" if role == ROLE_AGENT else "user", user_id)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    runtime = request.app[RUNTIME_KEY]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    loop = asyncio.get_running_loop()
    last_activity = loop.time()
    identity: Optional[Identity] = None

    def mark_activity() -> None:
        nonlocal last_activity
        last_activity = loop.time()

    async def idle_watchdog() -> None:
        try:
            while not ws.closed:
                remaining = last_activity + runtime.idle_timeout_s - loop.time()
                if remaining <= 0:
                    logger.info("Closing idle connection")
                    await ws.close(code=1001, message=b"idle timeout")
                    return
                await asyncio.sleep(remaining)
        except asyncio.CancelledError:
            return

    watchdog_task = asyncio.create_task(idle_watchdog())
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                mark_activity()
                try:
                    frame = msg.json()
                except ValueError:
                    logger.warning("Ignoring malformed json frame")
                    continue
                if not isinstance(frame, dict):
                    continue
                frame_type = frame.get("type")
                if frame_type == "AUTH":
                    identity = await _handle_auth(runtime, ws, frame, identity)
                elif frame_type == "SEND":
                    await _handle_send(runtime, frame, identity)
                elif frame_type == "HEARTBEAT":
                    await _send_json(ws, {"type": "PONG"})
                else:
                    logger.warning("Unknown frame type %r", frame_type)
            elif msg.type == WSMsgType.ERROR:
                logger.info("Websocket error: %s", ws.exception())
                break
    finally:
        watchdog_task.cancel()
        await asyncio.gather(watchdog_task, return_exceptions=True)
        if identity is not None:
            _disconnect(runtime, ws, identity)

    return ws
