"""Environment-backed settings for the gateway."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from scalebridge.config import defaults
from scalebridge.log import get_logger

LOG = get_logger("config")


def _normalize_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "t", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "f", "no", "n", "off"}:
            return False
    return None


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip()


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw.strip().replace(",", "."))
    except ValueError:
        LOG.warning("Invalid %s value %r; using %s", name, raw, default)
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        LOG.warning("Invalid %s value %r; using %s", name, raw, default)
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if not raw:
        return default
    value = _normalize_bool(raw)
    if value is None:
        LOG.warning("Invalid %s value %r; using %s", name, raw, default)
        return default
    return value


def _split_addr(value: str, default_host: str, default_port: int) -> Tuple[str, int]:
    """Split ``host:port``; a missing or bad port keeps the default."""

    host, sep, port_text = value.strip().rpartition(":")
    if not sep:
        return value.strip() or default_host, default_port
    try:
        port = int(port_text)
    except ValueError:
        LOG.warning("Invalid port in address %r; using %s", value, default_port)
        port = default_port
    return host or default_host, port


@dataclass(frozen=True)
class GatewaySettings:
    scale_host: str = defaults.SCALE_HOST
    scale_port: int = defaults.SCALE_PORT
    bridge_url: Optional[str] = defaults.BRIDGE_URL
    bridge_timeout: float = defaults.BRIDGE_TIMEOUT
    prefer_bridge: bool = defaults.PREFER_BRIDGE
    ws_host: str = defaults.WS_HOST
    ws_port: int = defaults.WS_PORT
    retry_delay: float = defaults.RETRY_DELAY
    reconnect_delay: float = defaults.RECONNECT_DELAY
    broadcast_capacity: int = defaults.BROADCAST_CAPACITY


def load_settings(env: Optional[Mapping[str, str]] = None) -> GatewaySettings:
    """Resolve settings from ``env`` (``os.environ`` by default)."""

    if env is None:
        env = os.environ

    scale_host = _env_str(env, "SCALE_HOST", defaults.SCALE_HOST) or defaults.SCALE_HOST
    scale_port = _env_int(env, "SCALE_PORT", defaults.SCALE_PORT)
    scale_addr = env.get("SCALE_ADDR")
    if scale_addr:
        scale_host, scale_port = _split_addr(scale_addr, scale_host, scale_port)

    ws_host = _env_str(env, "WS_HOST", defaults.WS_HOST) or defaults.WS_HOST
    ws_port = _env_int(env, "WS_PORT", defaults.WS_PORT)
    ws_addr = env.get("WS_ADDR")
    if ws_addr:
        ws_host, ws_port = _split_addr(ws_addr, ws_host, ws_port)

    bridge_url: Optional[str] = _env_str(env, "BRIDGE_URL", defaults.BRIDGE_URL)
    if not bridge_url:
        bridge_url = None

    return GatewaySettings(
        scale_host=scale_host,
        scale_port=scale_port,
        bridge_url=bridge_url,
        bridge_timeout=max(0.1, _env_float(env, "BRIDGE_TIMEOUT", defaults.BRIDGE_TIMEOUT)),
        prefer_bridge=_env_bool(env, "PREFER_BRIDGE", defaults.PREFER_BRIDGE),
        ws_host=ws_host,
        ws_port=ws_port,
        retry_delay=max(0.0, _env_float(env, "SCALE_RETRY_DELAY", defaults.RETRY_DELAY)),
        reconnect_delay=max(0.0, _env_float(env, "SCALE_RECONNECT_DELAY", defaults.RECONNECT_DELAY)),
        broadcast_capacity=max(1, _env_int(env, "BROADCAST_CAPACITY", defaults.BROADCAST_CAPACITY)),
    )


__all__ = ["GatewaySettings", "load_settings"]
