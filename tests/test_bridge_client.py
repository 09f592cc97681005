import asyncio
import json
import logging

import httpx

from scalebridge.bridge_client import BridgeClient

BRIDGE_URL = "http://bridge.local:8080/rincmd"


def test_posts_command_and_returns_body_text():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(200, text='{"response":"81050026: 12 kg G"}')

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    body = asyncio.run(client.post_command("read_gross"))

    assert body == '{"response":"81050026: 12 kg G"}'
    assert seen == [("POST", BRIDGE_URL, {"command": "read_gross"})]


def test_network_failure_returns_none(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.WARNING, logger="scalebridge.bridge"):
        assert asyncio.run(client.post_command("tare")) is None

    assert any("connection refused" in record.getMessage() for record in caplog.records)


def test_timeout_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = BridgeClient(BRIDGE_URL, timeout=0.1, transport=httpx.MockTransport(handler))
    assert asyncio.run(client.post_command("tare")) is None


def test_error_status_still_returns_body(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"response": "Failed to connect to scale: refused"})

    client = BridgeClient(BRIDGE_URL, transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.WARNING, logger="scalebridge.bridge"):
        body = asyncio.run(client.post_command("zero"))

    assert json.loads(body) == {"response": "Failed to connect to scale: refused"}
    assert any("HTTP 500" in record.getMessage() for record in caplog.records)


def test_disabled_bridge_makes_no_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="OK")

    client = BridgeClient(None, transport=httpx.MockTransport(handler))
    assert client.enabled is False
    assert asyncio.run(client.post_command("tare")) is None
    assert calls == []
