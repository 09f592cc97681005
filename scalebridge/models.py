from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum

from pydantic import BaseModel


@dataclass(frozen=True, slots=True)
class WeightReading:
    weight: float
    unit: str
    status: str
    raw: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))


@dataclass(frozen=True, slots=True)
class RawLine:
    """Device output that did not parse as a reading."""

    raw: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class CommandRequest(BaseModel):
    cmd: str


__all__ = ["WeightReading", "RawLine", "ConnectionState", "CommandRequest"]
