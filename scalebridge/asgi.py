"""ASGI application entrypoint for the scale bridge gateway."""
from __future__ import annotations

from scalebridge.main import create_app

# Built from environment settings so uvicorn can locate it via the dotted
# path ``scalebridge.asgi:app``.
app = create_app()

__all__ = ["app"]
