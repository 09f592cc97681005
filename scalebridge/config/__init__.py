"""Configuration helpers for the gateway."""

from .settings import GatewaySettings, load_settings  # noqa: F401

__all__ = ["GatewaySettings", "load_settings"]
