import asyncio
import logging
from typing import List, Optional

import httpx

from scalebridge.bridge_client import BridgeClient
from scalebridge.core.events import BroadcastHub
from scalebridge.routing import COMMAND_TABLE, CommandRouter, resolve_wire_command


class FakeDevice:
    def __init__(self, connected: bool = True, fail_writes: bool = False) -> None:
        self.connected = connected
        self.fail_writes = fail_writes
        self.sent: List[str] = []

    async def send(self, wire: str) -> bool:
        if not self.connected or self.fail_writes:
            return False
        self.sent.append(wire)
        return True


class FakeBridge:
    def __init__(self, response: Optional[str] = "OK") -> None:
        self.response = response
        self.commands: List[str] = []

    async def post_command(self, command: str) -> Optional[str]:
        self.commands.append(command)
        return self.response


def _route(router: CommandRouter, hub: BroadcastHub, cmd: str):
    async def scenario():
        subscription = hub.subscribe()
        result = await router.dispatch(cmd)
        broadcasts = [await subscription.get() for _ in range(subscription.pending())]
        subscription.close()
        return result, broadcasts

    return asyncio.run(scenario())


def test_command_table_matches_indicator_registers():
    assert resolve_wire_command("read_gross") == "20050026:"
    assert resolve_wire_command("read_net") == "20110027:"
    assert resolve_wire_command("tare") == "20120008:8003"
    assert resolve_wire_command("zero") == "21120008:0B"
    assert resolve_wire_command("calibrate") is None
    assert len(COMMAND_TABLE) == 4


def test_connected_device_gets_direct_write_and_bridge_is_skipped():
    hub = BroadcastHub()
    device = FakeDevice(connected=True)
    bridge = FakeBridge()
    router = CommandRouter(device, bridge, hub)

    result, broadcasts = _route(router, hub, "tare")

    assert device.sent == ["20120008:8003"]
    assert bridge.commands == []
    assert result == {"ok": True, "route": "direct", "cmd": "tare", "wire": "20120008:8003"}
    assert broadcasts == []


def test_disconnected_device_falls_back_to_bridge_and_republishes_reply():
    hub = BroadcastHub()
    device = FakeDevice(connected=False)
    bridge = FakeBridge(response='{"response":"81050026: 10 kg G"}')
    router = CommandRouter(device, bridge, hub)

    result, broadcasts = _route(router, hub, "read_gross")

    assert bridge.commands == ["read_gross"]
    assert result["route"] == "bridge"
    assert broadcasts == ['{"response":"81050026: 10 kg G"}']


def test_bridge_failure_is_silent(caplog):
    hub = BroadcastHub()
    device = FakeDevice(connected=False)
    bridge = FakeBridge(response=None)
    router = CommandRouter(device, bridge, hub)

    with caplog.at_level(logging.WARNING, logger="scalebridge.router"):
        result, broadcasts = _route(router, hub, "read_gross")

    assert bridge.commands == ["read_gross"]
    assert result["ok"] is False
    assert broadcasts == []
    assert any("not delivered" in record.getMessage() for record in caplog.records)


def test_failed_direct_write_falls_back_to_bridge():
    hub = BroadcastHub()
    device = FakeDevice(connected=True, fail_writes=True)
    bridge = FakeBridge()
    router = CommandRouter(device, bridge, hub)

    result, _ = _route(router, hub, "zero")

    assert bridge.commands == ["zero"]
    assert result["route"] == "bridge"


def test_unmapped_command_goes_to_bridge_verbatim():
    hub = BroadcastHub()
    device = FakeDevice(connected=True)
    bridge = FakeBridge()
    router = CommandRouter(device, bridge, hub)

    _route(router, hub, "20050026:")

    assert device.sent == []
    assert bridge.commands == ["20050026:"]


def test_prefer_bridge_skips_direct_link():
    hub = BroadcastHub()
    device = FakeDevice(connected=True)
    bridge = FakeBridge()
    router = CommandRouter(device, bridge, hub, prefer_bridge=True)

    result, broadcasts = _route(router, hub, "tare")

    assert device.sent == []
    assert bridge.commands == ["tare"]
    assert result["route"] == "bridge"
    assert broadcasts == ["OK"]


def test_submit_runs_dispatch_in_background():
    async def scenario():
        hub = BroadcastHub()
        bridge = FakeBridge()
        router = CommandRouter(FakeDevice(connected=False), bridge, hub)
        subscription = hub.subscribe()
        task = router.submit("read_net")
        result = await asyncio.wait_for(task, 1.0)
        await router.drain()
        return result, await subscription.get(), bridge.commands

    result, message, commands = asyncio.run(scenario())
    assert result["ok"] is True
    assert message == "OK"
    assert commands == ["read_net"]


def test_bridge_error_reply_reaches_subscribers():
    body = '{"response":"Failed to connect to scale: refused"}'

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text=body)

    hub = BroadcastHub()
    bridge = BridgeClient("http://bridge.local/rincmd", transport=httpx.MockTransport(handler))
    router = CommandRouter(FakeDevice(connected=False), bridge, hub)

    result, broadcasts = _route(router, hub, "read_gross")

    assert result == {"ok": True, "route": "bridge", "cmd": "read_gross", "response": body}
    assert broadcasts == [body]
