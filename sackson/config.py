"""
Client configuration, read from the environment.

    SACKSON_SERVER_URL    WebSocket endpoint of the game server
    SACKSON_MAX_BUY       Shares a player may buy per turn
    SACKSON_OPEN_TIMEOUT  Seconds to wait for the opening handshake
    SACKSON_LOG_LEVEL     Logging level used by the CLI
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping
import os

from .errors import ConfigError

DEFAULT_SERVER_URL = "ws://localhost:8001/join"
DEFAULT_MAX_BUY = 3
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the controller, transport and CLI."""
    server_url: str = DEFAULT_SERVER_URL
    max_buy_per_turn: int = DEFAULT_MAX_BUY
    open_timeout: float = DEFAULT_OPEN_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigError: if a numeric variable is not a valid number
        """
        env = os.environ if environ is None else environ

        max_buy = _parse_number(env, "SACKSON_MAX_BUY", DEFAULT_MAX_BUY, int)
        if max_buy < 0:
            raise ConfigError("SACKSON_MAX_BUY must be >= 0", value=max_buy)

        open_timeout = _parse_number(
            env, "SACKSON_OPEN_TIMEOUT", DEFAULT_OPEN_TIMEOUT, float
        )
        if open_timeout <= 0:
            raise ConfigError("SACKSON_OPEN_TIMEOUT must be > 0", value=open_timeout)

        return cls(
            server_url=env.get("SACKSON_SERVER_URL", DEFAULT_SERVER_URL),
            max_buy_per_turn=max_buy,
            open_timeout=open_timeout,
            log_level=env.get("SACKSON_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


def _parse_number(env: Mapping[str, str], name: str, default, kind):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}", variable=name)
