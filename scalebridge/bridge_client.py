"""HTTP client for the remote command bridge."""
from __future__ import annotations

from typing import Optional

import httpx

from scalebridge.log import get_logger


class BridgeClient:
    """Posts symbolic commands to the bridge service and returns its reply text."""

    def __init__(
        self,
        url: Optional[str],
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._log = get_logger("bridge")
        self._url = url.strip() if url else None
        self._timeout = timeout
        self._transport = transport

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def post_command(self, command: str) -> Optional[str]:
        if not self._url:
            self._log.debug("Bridge disabled; dropping command %r", command)
            return None

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"command": command})
        except httpx.TimeoutException:
            self._log.warning("Bridge request for %r timed out after %.1fs", command, self._timeout)
            return None
        except httpx.HTTPError as exc:
            self._log.warning("Bridge request for %r failed: %s", command, exc)
            return None

        # Error statuses still carry the relay outcome text.
        if response.is_success:
            self._log.info("Bridge accepted command %r", command)
        else:
            self._log.warning(
                "Bridge answered command %r with HTTP %s: %s",
                command,
                response.status_code,
                response.text,
            )
        return response.text


__all__ = ["BridgeClient"]
