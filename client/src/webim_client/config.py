from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_WS_URL = "ws://localhost:8080/ws"
DEFAULT_HTTP_BASE_URL = "http://localhost:8080"


@dataclass(frozen=True)
class ClientConfig:
    ws_url: str = DEFAULT_WS_URL
    http_base_url: str = DEFAULT_HTTP_BASE_URL
    heartbeat_interval_s: float = 30.0
    reconnect_delay_s: float = 3.0
    # 1.0 keeps the reconnect delay fixed; larger values grow it per failed
    # attempt up to reconnect_max_delay_s.
    reconnect_backoff: float = 1.0
    reconnect_max_delay_s: float = 30.0
    history_limit: int = 100

    def __post_init__(self) -> None:
        if self.heartbeat_interval_s <= 0:
            raise ValueError("heartbeat_interval_s must be positive")
        if self.reconnect_delay_s < 0:
            raise ValueError("reconnect_delay_s must be non-negative")
        if self.reconnect_backoff < 1.0:
            raise ValueError("reconnect_backoff must be at least 1.0")
        if self.reconnect_max_delay_s < self.reconnect_delay_s:
            raise ValueError("reconnect_max_delay_s must not be below reconnect_delay_s")
        if self.history_limit <= 0:
            raise ValueError("history_limit must be positive")

    def next_reconnect_delay(self, current_delay_s: float) -> float:
        return min(self.reconnect_max_delay_s, current_delay_s * self.reconnect_backoff)

    def with_overrides(self, **overrides) -> "ClientConfig":
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def _parse_non_negative_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        parsed = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if parsed < 0:
        raise ValueError(f"{name} must be non-negative")
    return parsed


def _parse_positive_float(name: str, default: float) -> float:
    parsed = _parse_non_negative_float(name, default)
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


def _parse_backoff(name: str, default: float) -> float:
    parsed = _parse_non_negative_float(name, default)
    if parsed < 1.0:
        raise ValueError(f"{name} must be at least 1.0")
    return parsed


def _parse_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


def _parse_str(name: str, default: str) -> str:
    raw: Optional[str] = os.environ.get(name)
    return raw if raw else default


def load_client_config_from_env() -> ClientConfig:
    defaults = ClientConfig()
    reconnect_delay_s = _parse_non_negative_float("WEBIM_RECONNECT_DELAY_S", defaults.reconnect_delay_s)
    reconnect_max_delay_s = _parse_non_negative_float(
        "WEBIM_RECONNECT_MAX_DELAY_S", max(defaults.reconnect_max_delay_s, reconnect_delay_s)
    )
    if reconnect_max_delay_s < reconnect_delay_s:
        raise ValueError("WEBIM_RECONNECT_MAX_DELAY_S must not be below WEBIM_RECONNECT_DELAY_S")
    return ClientConfig(
        ws_url=_parse_str("WEBIM_WS_URL", defaults.ws_url),
        http_base_url=_parse_str("WEBIM_HTTP_BASE_URL", defaults.http_base_url),
        heartbeat_interval_s=_parse_positive_float("WEBIM_HEARTBEAT_INTERVAL_S", defaults.heartbeat_interval_s),
        reconnect_delay_s=reconnect_delay_s,
        reconnect_backoff=_parse_backoff("WEBIM_RECONNECT_BACKOFF", defaults.reconnect_backoff),
        reconnect_max_delay_s=reconnect_max_delay_s,
        history_limit=_parse_positive_int("WEBIM_HISTORY_LIMIT", defaults.history_limit),
    )
