"""Command routing between the direct device link and the HTTP bridge."""
from __future__ import annotations

import asyncio
from typing import Dict, Optional, Protocol, Set

from scalebridge.core.events import BroadcastHub
from scalebridge.log import get_logger

# Rinstrum C320 register commands.
COMMAND_TABLE: Dict[str, str] = {
    "read_gross": "20050026:",
    "read_net": "20110027:",
    "tare": "20120008:8003",
    "zero": "21120008:0B",
}

LOG = get_logger("router")


class DirectLink(Protocol):
    async def send(self, wire: str) -> bool: ...


class Bridge(Protocol):
    async def post_command(self, command: str) -> Optional[str]: ...


def resolve_wire_command(cmd: str) -> Optional[str]:
    return COMMAND_TABLE.get(cmd)


class CommandRouter:
    """Delivers client commands to the scale.

    Mapped commands go straight to the device writer when one is available;
    everything else, and anything the direct write could not deliver, is handed
    to the bridge. Bridge replies are republished verbatim to every subscriber.
    Failures on both paths are only logged.
    """

    def __init__(
        self,
        device: DirectLink,
        bridge: Bridge,
        hub: BroadcastHub,
        *,
        prefer_bridge: bool = False,
    ) -> None:
        self._device = device
        self._bridge = bridge
        self._hub = hub
        self._prefer_bridge = prefer_bridge
        self._pending: Set[asyncio.Task] = set()

    @property
    def prefer_bridge(self) -> bool:
        return self._prefer_bridge

    async def dispatch(self, cmd: str) -> Dict[str, object]:
        if not self._prefer_bridge:
            wire = resolve_wire_command(cmd)
            if wire is None:
                LOG.info("No wire mapping for %r; using bridge", cmd)
            elif await self._device.send(wire):
                return {"ok": True, "route": "direct", "cmd": cmd, "wire": wire}
            else:
                LOG.info("Direct link unavailable for %r; using bridge", cmd)

        response = await self._bridge.post_command(cmd)
        if response is None:
            LOG.warning("Command %r was not delivered", cmd)
            return {"ok": False, "cmd": cmd, "reason": "bridge_failed"}

        self._hub.publish(response)
        return {"ok": True, "route": "bridge", "cmd": cmd, "response": response}

    def submit(self, cmd: str) -> asyncio.Task:
        """Run :meth:`dispatch` in the background and return its task."""

        task = asyncio.create_task(self._dispatch_logged(cmd))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _dispatch_logged(self, cmd: str) -> Dict[str, object]:
        try:
            return await self.dispatch(cmd)
        except Exception:
            LOG.exception("Unexpected error routing command %r", cmd)
            return {"ok": False, "cmd": cmd, "reason": "internal_error"}

    async def drain(self) -> None:
        """Wait for background dispatches still in flight."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["COMMAND_TABLE", "CommandRouter", "resolve_wire_command"]
