"""Client session layer for the WebIM support chat."""

from .client import ChatClient
from .composer import Composition, NotSendableError, OutboundComposer
from .config import ClientConfig, load_client_config_from_env
from .connection import ConnectionManager, NotConnected, TransportError
from .frames import MessageKind, ProtocolError, Role
from .http_api import ChatApi, HistoryError, UploadFailure
from .renderer import ConsoleRenderer, Renderer
from .session import ChatMessage, ConnectionState, Session

__all__ = [
    "ChatApi",
    "ChatClient",
    "ChatMessage",
    "ClientConfig",
    "Composition",
    "ConnectionManager",
    "ConnectionState",
    "ConsoleRenderer",
    "HistoryError",
    "MessageKind",
    "NotConnected",
    "NotSendableError",
    "OutboundComposer",
    "ProtocolError",
    "Renderer",
    "Role",
    "Session",
    "TransportError",
    "UploadFailure",
    "load_client_config_from_env",
]
