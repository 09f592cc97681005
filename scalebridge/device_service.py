"""Persistent TCP session to the scale indicator."""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from scalebridge.core.events import BroadcastHub
from scalebridge.line_parser import to_payload
from scalebridge.log import get_logger
from scalebridge.models import ConnectionState

_TRANSITIONS = {
    (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
    (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
    (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED),
    (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED),
}

ERROR_LOG_INTERVAL = 5.0


class DeviceConnectionManager:
    """Keeps one connection to the device alive and publishes every line it reads.

    The supervising task cycles connect, read until EOF or error, back off, and
    reconnect for as long as the process runs. Outbound commands go through
    :meth:`send`, which borrows the current writer under a lock.
    """

    def __init__(
        self,
        host: str,
        port: int,
        hub: BroadcastHub,
        *,
        retry_delay: float = 3.0,
        reconnect_delay: float = 2.0,
        line_terminator: str = "\n",
        encoding: str = "utf-8",
    ) -> None:
        self._log = get_logger("device")
        self._host = host
        self._port = int(port)
        self._hub = hub
        self._retry_delay = max(0.0, retry_delay)
        self._reconnect_delay = max(0.0, reconnect_delay)
        self._terminator = line_terminator
        self._encoding = encoding
        self._state = ConnectionState.DISCONNECTED
        self._writer: Optional[asyncio.StreamWriter] = None
        self._writer_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._status_reason = ""
        self._last_line_ts: Optional[float] = None
        self._last_error_log: Optional[float] = None
        self._connects = 0
        self._log.info("DeviceConnectionManager init for %s:%d", self._host, self._port)

    # ------------------------------------------------------------------
    # Lifecycle
    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="DeviceConnectionManager")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_writer()
        if self._state is not ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Public API
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def get_status(self) -> Dict[str, object]:
        status: Dict[str, object] = {
            "ok": self.connected,
            "state": self._state.value,
            "host": self._host,
            "port": self._port,
            "connects": self._connects,
        }
        if not self.connected and self._status_reason:
            status["reason"] = self._status_reason
        if self._last_line_ts is not None:
            status["ts"] = datetime.fromtimestamp(self._last_line_ts, tz=timezone.utc).isoformat()
        return status

    async def send(self, wire: str) -> bool:
        """Write one command line to the device; ``False`` if it could not be sent."""

        payload = (wire + self._terminator).encode(self._encoding)
        async with self._writer_lock:
            writer = self._writer
            if writer is None:
                return False
            try:
                writer.write(payload)
                await writer.drain()
            except (ConnectionError, OSError) as exc:
                self._log.warning("Write to scale failed for %r: %s", wire, exc)
                return False
        self._log.info("Sent %r to scale", wire)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    async def _run(self) -> None:
        while True:
            self._set_state(ConnectionState.CONNECTING)
            try:
                reader, writer = await asyncio.open_connection(self._host, self._port)
            except (OSError, ValueError) as exc:
                self._set_state(ConnectionState.DISCONNECTED, str(exc))
                self._log_connect_failure(exc)
                await asyncio.sleep(self._retry_delay)
                continue

            async with self._writer_lock:
                self._writer = writer
            self._connects += 1
            self._set_state(ConnectionState.CONNECTED)
            self._log.info("Connected to scale at %s:%d", self._host, self._port)

            reason = await self._read_lines(reader)

            await self._release_writer()
            self._set_state(ConnectionState.DISCONNECTED, reason)
            await asyncio.sleep(self._reconnect_delay)

    async def _read_lines(self, reader: asyncio.StreamReader) -> str:
        while True:
            try:
                data = await reader.readline()
            except (ConnectionError, OSError, ValueError) as exc:
                self._log.warning("Read from scale failed: %s", exc)
                return str(exc) or type(exc).__name__
            if not data:
                return "eof"
            line = data.decode(self._encoding, errors="replace").rstrip("\r\n")
            self._last_line_ts = time.time()
            self._hub.publish(to_payload(line))

    async def _release_writer(self) -> None:
        async with self._writer_lock:
            writer = self._writer
            self._writer = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    def _set_state(self, state: ConnectionState, reason: str = "") -> None:
        previous = self._state
        if (previous, state) not in _TRANSITIONS:
            raise RuntimeError(f"invalid device state transition {previous.value} -> {state.value}")
        self._state = state
        if reason:
            self._status_reason = reason
        if previous is ConnectionState.CONNECTED:
            self._log.info("Scale disconnected: %s", reason or "unknown reason")

    def _log_connect_failure(self, exc: Exception) -> None:
        now = time.monotonic()
        if self._last_error_log is None or now - self._last_error_log > ERROR_LOG_INTERVAL:
            self._log.warning("Scale connection to %s:%d failed: %s", self._host, self._port, exc)
            self._last_error_log = now
        else:
            self._log.debug("Scale connection to %s:%d failed: %s", self._host, self._port, exc)


__all__ = ["DeviceConnectionManager"]
