"""Parser for weight lines emitted by the scale indicator.

Indicator output looks like ``"81050026:    426 kg G"``: an optional frame
identifier, then weight, unit and status separated by whitespace. Some
firmwares print a decimal comma (``"12,5"``) and some send the bare number.
"""
from __future__ import annotations

import math
import re
from typing import List, Optional

from scalebridge.models import RawLine, WeightReading

DEFAULT_UNIT = "kg"

# Plain ASCII decimals only; float() alone would also take "1_000" or "inf".
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)


def _tokens(text: str) -> List[str]:
    return text.replace(",", ".").split()


def _to_weight(token: str) -> Optional[float]:
    if not _NUMBER.fullmatch(token):
        return None
    value = float(token)
    if not math.isfinite(value):
        return None
    return value


def line_remainder(line: str) -> str:
    """Return the part of ``line`` after the frame identifier, trimmed."""

    if ":" in line:
        return line.partition(":")[2].strip()
    return line.strip()


def parse_line(line: str) -> Optional[WeightReading]:
    """Return the reading carried by ``line`` or ``None`` when it has none."""

    raw = line_remainder(line)
    tokens = _tokens(raw)
    if not tokens:
        return None

    if ":" in line:
        if len(tokens) >= 3:
            unit, status = tokens[1], tokens[2]
        elif len(tokens) == 1:
            unit, status = DEFAULT_UNIT, ""
        else:
            return None
    else:
        unit, status = DEFAULT_UNIT, ""

    weight = _to_weight(tokens[0])
    if weight is None:
        return None
    return WeightReading(weight=weight, unit=unit, status=status, raw=raw)


def to_payload(line: str) -> str:
    """Serialize ``line`` for broadcast, falling back to a raw record."""

    reading = parse_line(line)
    if reading is not None:
        return reading.to_json()
    return RawLine(raw=line_remainder(line)).to_json()


__all__ = ["parse_line", "line_remainder", "to_payload", "DEFAULT_UNIT"]
