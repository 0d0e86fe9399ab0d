"""Duration strings in the ``1h30m`` / ``90s`` / ``500ms`` style.

The same syntax is accepted for ``polling_interval`` and for ``@every``
maintenance schedules.
"""
from __future__ import annotations

import re
from typing import Union

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_BARE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_duration(value: Union[str, int, float]) -> float:
    """Return ``value`` in seconds.

    Numbers are taken as seconds. Strings are a sequence of decimal numbers
    each followed by a unit (``ns us ms s m h``), e.g. ``"1h30m"`` or
    ``"2.5s"``; a bare number string is also seconds.

    Raises:
        ValueError: on an empty or malformed string.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    if _BARE.fullmatch(text):
        return float(text)
    pos = 0
    total = 0.0
    for match in _PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return total


__all__ = ["parse_duration"]
