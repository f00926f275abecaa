"""
Runtime configuration read from environment variables.

Environment Variables:
    MCP_HOST: Bind address (default: 0.0.0.0)
    MCP_PORT: Server port (default: 3000)
    MCP_ALLOWED_HOSTS: Comma-separated Host header allow-list (default: any)
    NASA_API_BASE: Image library API root (default: https://images-api.nasa.gov)
    NASA_PAGE_SIZE: Results kept per search (default: 20)
    NASA_TIMEOUT: Upstream request timeout in seconds (default: 15)
    SESSION_IDLE_TIMEOUT: Seconds before an idle session is evicted (default: 1800)
    SESSION_SWEEP_INTERVAL: Seconds between idle sweeps (default: 60)
    EVENT_LOG_MAX_EVENTS: Stream events retained per session for replay (default: 1000)
    LOG_LEVEL: Logging level (default: INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from .exceptions import ConfigurationError

DEFAULT_NASA_API_BASE = "https://images-api.nasa.gov"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    allowed_hosts: tuple[str, ...] = field(default_factory=tuple)
    nasa_api_base: str = DEFAULT_NASA_API_BASE
    page_size: int = 20
    upstream_timeout: float = 15.0
    session_idle_timeout: float = 1800.0
    session_sweep_interval: float = 60.0
    event_log_max_events: int = 1000
    log_level: str = "INFO"

    def to_dict(self) -> dict[str, Any]:
        """Plain dict, suitable for ``providers.Configuration.from_dict``."""
        data = asdict(self)
        data["allowed_hosts"] = list(self.allowed_hosts)
        return data


def _get_number(env: Mapping[str, str], name: str, default: float, cast: type) -> Any:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        msg = f"Environment variable {name} must be a number, got {raw!r}"
        raise ConfigurationError(msg) from e
    if value <= 0:
        msg = f"Environment variable {name} must be positive, got {raw!r}"
        raise ConfigurationError(msg)
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from the environment (or an explicit mapping)."""
    env = os.environ if env is None else env
    allowed = tuple(h.strip() for h in env.get("MCP_ALLOWED_HOSTS", "").split(",") if h.strip())

    return Settings(
        host=env.get("MCP_HOST", "").strip() or Settings.host,
        port=_get_number(env, "MCP_PORT", Settings.port, int),
        allowed_hosts=allowed,
        nasa_api_base=env.get("NASA_API_BASE", "").strip().rstrip("/") or DEFAULT_NASA_API_BASE,
        page_size=_get_number(env, "NASA_PAGE_SIZE", Settings.page_size, int),
        upstream_timeout=_get_number(env, "NASA_TIMEOUT", Settings.upstream_timeout, float),
        session_idle_timeout=_get_number(env, "SESSION_IDLE_TIMEOUT", Settings.session_idle_timeout, float),
        session_sweep_interval=_get_number(env, "SESSION_SWEEP_INTERVAL", Settings.session_sweep_interval, float),
        event_log_max_events=_get_number(env, "EVENT_LOG_MAX_EVENTS", Settings.event_log_max_events, int),
        log_level=env.get("LOG_LEVEL", "").strip().upper() or Settings.log_level,
    )
