"""Client settings, with overrides from ``STEAMCHAT_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from . import __version__

STEAM_API_HOST = "api.steampowered.com"
STEAM_API_AGENT = f"Steam App / steamchat / {__version__}"
STEAM_API_AGENT_AUTH = "Steam 1291812 / iPhone"
STEAM_API_CLIENT_ID = "DE45CD61"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class SteamApiConfig:
    host: str = STEAM_API_HOST
    port: int = 443
    ssl: bool = True
    agent: str = STEAM_API_AGENT
    auth_agent: str = STEAM_API_AGENT_AUTH
    client_id: str = STEAM_API_CLIENT_ID
    poll_timeout_s: int = 30
    request_timeout_s: float = 60.0
    summaries_batch_size: int = 100

    def __post_init__(self) -> None:
        if self.summaries_batch_size < 1:
            raise ValueError("summaries_batch_size must be positive")
        if self.poll_timeout_s < 0:
            raise ValueError("poll_timeout_s must be non-negative")

    @property
    def scheme(self) -> str:
        return "https" if self.ssl else "http"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SteamApiConfig:
        """Build a config from ``STEAMCHAT_*`` environment variables."""

        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        if env.get("STEAMCHAT_HOST"):
            kwargs["host"] = env["STEAMCHAT_HOST"]
        if env.get("STEAMCHAT_PORT"):
            kwargs["port"] = _parse_int("STEAMCHAT_PORT", env["STEAMCHAT_PORT"])
        if env.get("STEAMCHAT_SSL"):
            kwargs["ssl"] = env["STEAMCHAT_SSL"].strip().lower() not in _FALSE_VALUES
        if env.get("STEAMCHAT_POLL_TIMEOUT"):
            kwargs["poll_timeout_s"] = _parse_int("STEAMCHAT_POLL_TIMEOUT", env["STEAMCHAT_POLL_TIMEOUT"])
        if env.get("STEAMCHAT_REQUEST_TIMEOUT"):
            kwargs["request_timeout_s"] = float(
                _parse_int("STEAMCHAT_REQUEST_TIMEOUT", env["STEAMCHAT_REQUEST_TIMEOUT"])
            )
        return cls(**kwargs)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
