"""Per-client WebSocket session: broadcast relay plus inbound commands."""
from __future__ import annotations

import asyncio
import json
from typing import List, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from scalebridge.core.events import BroadcastHub, Subscription
from scalebridge.log import get_logger
from scalebridge.routing import CommandRouter

LOG = get_logger("ws")


def parse_client_message(text: str) -> Optional[str]:
    """Return the command carried by a client text frame, if any."""

    try:
        message = json.loads(text)
    except ValueError:
        LOG.info("Ignoring non-JSON client message: %.200s", text)
        return None

    if not isinstance(message, dict):
        LOG.info("Ignoring unrecognized client message: %.200s", text)
        return None
    if "ping" in message:
        return None

    cmd = message.get("cmd")
    if isinstance(cmd, str):
        return cmd

    LOG.info("Ignoring unrecognized client message: %.200s", text)
    return None


async def _relay_broadcasts(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await subscription.get()
        try:
            await websocket.send_text(message)
        except (WebSocketDisconnect, RuntimeError, ConnectionError) as exc:
            LOG.debug("Send to client failed: %s", exc)
            return


async def _process_inbound(websocket: WebSocket, router: CommandRouter) -> None:
    while True:
        try:
            message = await websocket.receive()
        except (WebSocketDisconnect, RuntimeError, ConnectionError) as exc:
            LOG.debug("Receive from client failed: %s", exc)
            return

        if message["type"] == "websocket.disconnect":
            return

        text = message.get("text")
        if text is None:
            continue

        cmd = parse_client_message(text)
        if cmd is not None:
            LOG.info("Client command %r", cmd)
            router.submit(cmd)


async def serve_client(websocket: WebSocket, hub: BroadcastHub, router: CommandRouter) -> None:
    """Serve one subscriber until it disconnects or a send/receive fails.

    Whichever duty ends first takes the other down with it; cancelling this
    coroutine ends both.
    """

    subscription = hub.subscribe()
    tasks: List[asyncio.Task] = []
    try:
        await websocket.accept()
        LOG.info("WebSocket client connected (%d total)", hub.subscriber_count)

        tasks.append(asyncio.create_task(_relay_broadcasts(websocket, subscription)))
        tasks.append(asyncio.create_task(_process_inbound(websocket, router)))
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                LOG.error("WebSocket client task failed", exc_info=task.exception())
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        subscription.close()
        if subscription.dropped:
            LOG.info("Client missed %d broadcast(s) while lagging", subscription.dropped)
        await _close_quietly(websocket)
        LOG.info("WebSocket client disconnected (%d remaining)", hub.subscriber_count)


async def _close_quietly(websocket: WebSocket) -> None:
    if websocket.application_state == WebSocketState.DISCONNECTED:
        return
    if websocket.client_state == WebSocketState.DISCONNECTED:
        return
    try:
        await websocket.close()
    except (RuntimeError, ConnectionError):
        pass


__all__ = ["parse_client_message", "serve_client"]
