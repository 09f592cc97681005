"""Default values used when the environment does not override them."""

# Rinstrum indicators expose their serial port through a TCP converter.
SCALE_HOST = "127.0.0.1"
SCALE_PORT = 2101

BRIDGE_URL = "http://localhost:8080/rincmd"
BRIDGE_TIMEOUT = 5.0
PREFER_BRIDGE = False

WS_HOST = "0.0.0.0"
WS_PORT = 3001

# Backoff after a failed connect, and after a stream that ended.
RETRY_DELAY = 3.0
RECONNECT_DELAY = 2.0

BROADCAST_CAPACITY = 64

__all__ = [
    "SCALE_HOST",
    "SCALE_PORT",
    "BRIDGE_URL",
    "BRIDGE_TIMEOUT",
    "PREFER_BRIDGE",
    "WS_HOST",
    "WS_PORT",
    "RETRY_DELAY",
    "RECONNECT_DELAY",
    "BROADCAST_CAPACITY",
]
