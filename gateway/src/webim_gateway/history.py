from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Tuple


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChatRecord:
    """An immutable stored chat message."""

    seq: int
    from_id: str
    from_role: int
    to_id: str
    content: str
    msg_type: int
    create_time_ms: int

    def to_json(self) -> Dict[str, object]:
        return {
            "id": self.seq,
            "fromId": self.from_id,
            "fromType": self.from_role,
            "toId": self.to_id,
            "content": self.content,
            "msgType": self.msg_type,
            "createTime": self.create_time_ms,
        }


class MessageLog:
    """In-memory, append-only store of delivered chat messages."""

    def __init__(self) -> None:
        self._records: List[ChatRecord] = []
        self._by_pair: Dict[Tuple[str, str], List[ChatRecord]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def append(
        self,
        from_id: str,
        from_role: int,
        to_id: str,
        content: str,
        msg_type: int,
        ts_ms: int | None = None,
    ) -> ChatRecord:
        record = ChatRecord(
            seq=len(self._records) + 1,
            from_id=from_id,
            from_role=from_role,
            to_id=to_id,
            content=content,
            msg_type=msg_type,
            create_time_ms=_now_ms() if ts_ms is None else ts_ms,
        )
        self._records.append(record)
        self._by_pair.setdefault(self._pair(from_id, to_id), []).append(record)
        return record

    def history(self, user_id: str, target_id: str, limit: int = 100) -> list[ChatRecord]:
        """Return the most recent ``limit`` messages between two parties.

        Messages in either direction are included, ordered oldest first.
        """

        if limit <= 0:
            return []
        records = self._by_pair.get(self._pair(user_id, target_id), [])
        return list(records[-limit:])

    @staticmethod
    def _pair(a: str, b: str) -> Tuple[str, str]:
        return (a, b) if a <= b else (b, a)
