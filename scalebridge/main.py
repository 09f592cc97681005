"""
Scale Bridge Gateway - FastAPI server
Includes: device link, WebSocket fan-out, command routing, health
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from scalebridge import __version__
from scalebridge.bridge_client import BridgeClient
from scalebridge.config import GatewaySettings, load_settings
from scalebridge.core.events import BroadcastHub
from scalebridge.device_service import DeviceConnectionManager
from scalebridge.handler import serve_client
from scalebridge.log import get_logger
from scalebridge.models import CommandRequest
from scalebridge.routing import CommandRouter

LOG = get_logger("gateway")


class Gateway:
    """Wires the hub, device link, bridge client and router together."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        bridge_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.hub = BroadcastHub(settings.broadcast_capacity)
        self.device = DeviceConnectionManager(
            settings.scale_host,
            settings.scale_port,
            self.hub,
            retry_delay=settings.retry_delay,
            reconnect_delay=settings.reconnect_delay,
        )
        self.bridge = BridgeClient(
            settings.bridge_url,
            timeout=settings.bridge_timeout,
            transport=bridge_transport,
        )
        self.router = CommandRouter(
            self.device,
            self.bridge,
            self.hub,
            prefer_bridge=settings.prefer_bridge,
        )

    async def start(self) -> None:
        LOG.info(
            "Starting gateway: scale=%s:%d bridge=%s prefer_bridge=%s",
            self.settings.scale_host,
            self.settings.scale_port,
            self.bridge.url or "disabled",
            self.settings.prefer_bridge,
        )
        self.device.start()

    async def stop(self) -> None:
        await self.device.stop()
        await self.router.drain()
        LOG.info("Gateway stopped")

    def health(self) -> Dict[str, object]:
        return {
            "status": "ok",
            "device": self.device.get_status(),
            "bridge": {"url": self.bridge.url, "prefer": self.router.prefer_bridge},
            "subscribers": self.hub.subscriber_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def create_app(
    settings: Optional[GatewaySettings] = None,
    *,
    bridge_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    gateway = Gateway(settings or load_settings(), bridge_transport=bridge_transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        await gateway.start()
        yield
        await gateway.stop()

    app = FastAPI(title="Scale Bridge Gateway", version=__version__, lifespan=lifespan)
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============= WEBSOCKET =============

    @app.websocket("/")
    async def websocket_root(websocket: WebSocket):
        await serve_client(websocket, gateway.hub, gateway.router)

    @app.websocket("/ws/scale")
    async def websocket_scale(websocket: WebSocket):
        """WebSocket endpoint for real-time weight data"""
        await serve_client(websocket, gateway.hub, gateway.router)

    # ============= SCALE ENDPOINTS =============

    @app.get("/api/scale/status")
    async def scale_status():
        return gateway.device.get_status()

    @app.post("/api/scale/command")
    async def scale_command(data: CommandRequest):
        return await gateway.router.dispatch(data.cmd)

    # ============= HEALTH CHECK =============

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return gateway.health()

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.ws_host, port=settings.ws_port)


if __name__ == "__main__":
    main()
