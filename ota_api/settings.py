"""Environment-driven configuration for the update server.

``ServerSettings.from_env`` is read once at process start; the application
factory takes an explicit settings object so tests can build isolated apps.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

DEFAULT_PORT = 3000


def _first_env(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def parse_asset_request_headers(raw: Optional[str]) -> Dict[str, str]:
    """Parse the JSON object of extra headers clients send with asset requests."""
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"OTA_ASSET_REQUEST_HEADERS is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in payload.items()
    ):
        raise ValueError("OTA_ASSET_REQUEST_HEADERS must be a JSON object of string values")
    return dict(payload)


@dataclass(frozen=True)
class ServerSettings:
    """Runtime configuration of one server process."""

    updates_root: Path = Path("updates")
    private_key_path: Optional[Path] = None
    hostname: Optional[str] = None
    asset_request_headers: Dict[str, str] = field(default_factory=dict)
    cors_allow_origins: Tuple[str, ...] = ()
    cors_allow_methods: Tuple[str, ...] = ("GET", "OPTIONS")
    cors_allow_headers: Tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        """Build settings from ``OTA_*`` environment variables."""
        env = os.environ if env is None else env
        key_path = _first_env(env, "OTA_PRIVATE_KEY_PATH", "PRIVATE_KEY_PATH")
        port_raw = _first_env(env, "OTA_PORT")
        try:
            port = int(port_raw) if port_raw else DEFAULT_PORT
        except ValueError as exc:
            raise ValueError(f"OTA_PORT must be an integer, got {port_raw!r}") from exc
        if not 1 <= port <= 65535:
            raise ValueError(f"OTA_PORT out of range: {port}")

        return cls(
            updates_root=Path(_first_env(env, "OTA_UPDATES_ROOT") or "updates"),
            private_key_path=Path(key_path) if key_path else None,
            hostname=_first_env(env, "OTA_HOSTNAME"),
            asset_request_headers=parse_asset_request_headers(
                _first_env(env, "OTA_ASSET_REQUEST_HEADERS")
            ),
            cors_allow_origins=_split_csv(env.get("CORS_ALLOW_ORIGINS")),
            cors_allow_methods=_split_csv(env.get("CORS_ALLOW_METHODS")) or ("GET", "OPTIONS"),
            cors_allow_headers=_split_csv(env.get("CORS_ALLOW_HEADERS")) or ("*",),
            host=_first_env(env, "OTA_HOST") or "0.0.0.0",
            port=port,
        )
