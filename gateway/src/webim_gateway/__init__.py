"""Reference gateway speaking the WebIM chat protocol."""

from .agents import AgentPool
from .history import ChatRecord, MessageLog
from .ws_transport import RUNTIME_KEY, Runtime, create_app

__all__ = [
    "AgentPool",
    "ChatRecord",
    "MessageLog",
    "RUNTIME_KEY",
    "Runtime",
    "create_app",
]
