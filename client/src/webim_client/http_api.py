"""HTTP collaborators of the session layer: media upload and message history."""

from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import IO, List, Optional, Union

import aiohttp

from .frames import MessageKind
from .session import ChatMessage

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/chat/upload"
HISTORY_PATH = "/api/chat/history"
UPLOAD_ERROR_SENTINEL = "error"


class UploadFailure(Exception):
    """The upload endpoint rejected the file or could not be reached."""


class HistoryError(Exception):
    """The history endpoint failed or returned an unexpected body."""


def _build_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}{path}"


def _parse_create_time(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value:
        try:
            parsed = _dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return int(parsed.timestamp() * 1000)
    return None


def parse_history_entry(
    entry: object, user_id: Optional[str] = None, target_id: Optional[str] = None
) -> Optional[ChatMessage]:
    """Build a message from one history entry, or ``None`` if it is malformed.

    Entries that carry no ``toId`` are addressed to whichever of ``user_id``
    and ``target_id`` did not send them.
    """

    if not isinstance(entry, dict):
        return None
    from_id = entry.get("fromId")
    content = entry.get("content")
    if from_id is None or isinstance(from_id, bool) or not isinstance(content, str):
        return None
    sender = str(from_id)
    to_id = entry.get("toId")
    if to_id is None or isinstance(to_id, bool):
        to_id = target_id if sender == user_id else user_id
    return ChatMessage(
        from_id=sender,
        to_id="" if to_id is None else str(to_id),
        content=content,
        kind=MessageKind.from_wire(entry.get("msgType", MessageKind.TEXT)),
        timestamp=_parse_create_time(entry.get("createTime")),
    )


class ChatApi:
    def __init__(self, http: aiohttp.ClientSession, base_url: str) -> None:
        self._http = http
        self.base_url = base_url

    async def upload(self, file: Union[str, Path, bytes, IO[bytes]], *, filename: str | None = None) -> str:
        """Upload ``file`` and return the gateway's storage reference.

        The reference is opaque (it may be relative or absolute); callers pass
        it through unchanged.
        """

        if isinstance(file, (str, Path)):
            path = Path(file)
            try:
                data: Union[bytes, IO[bytes]] = path.read_bytes()
            except OSError as exc:
                raise UploadFailure(f"cannot read {path}: {exc}") from exc
            filename = filename or path.name
        else:
            data = file
        if isinstance(data, bytes) and not data:
            raise UploadFailure("file is empty")

        form = aiohttp.FormData()
        form.add_field("file", data, filename=filename or "upload.bin", content_type="application/octet-stream")
        try:
            async with self._http.post(_build_url(self.base_url, UPLOAD_PATH), data=form) as response:
                body = (await response.text()).strip()
                status = response.status
        except (aiohttp.ClientError, OSError) as exc:
            raise UploadFailure(f"upload request failed: {exc}") from exc
        if status >= 400:
            raise UploadFailure(f"upload rejected with HTTP {status}")
        if not body or body == UPLOAD_ERROR_SENTINEL:
            raise UploadFailure("upload rejected by gateway")
        return body

    async def history(self, user_id: str, target_id: str) -> List[ChatMessage]:
        params = {"userId": user_id, "targetId": target_id}
        try:
            async with self._http.get(_build_url(self.base_url, HISTORY_PATH), params=params) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, OSError, ValueError) as exc:
            raise HistoryError(f"history request failed: {exc}") from exc
        if not isinstance(payload, list):
            raise HistoryError("history response must be a JSON array")
        messages: List[ChatMessage] = []
        for entry in payload:
            message = parse_history_entry(entry, user_id, target_id)
            if message is None:
                logger.debug("Skipping malformed history entry: %r", entry)
                continue
            messages.append(message)
        return messages
