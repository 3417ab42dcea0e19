"""Parsing of Go-style duration strings such as ``5m``, ``1h30m`` or ``1.5h``."""

from __future__ import annotations

import re
from datetime import timedelta

# Seconds per unit
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)", re.ASCII)


def parse_duration(text: str) -> timedelta:
    """Parse a duration string into a timedelta.

    A duration is a sequence of decimal numbers, each with a unit suffix,
    e.g. "300ms", "1.5h" or "2h45m". A bare "0" is accepted.

    Raises:
        ValueError: If the string is not a valid duration
    """
    raw = text.strip()
    if raw in ("0", "+0", "-0"):
        return timedelta(0)

    sign = 1
    if raw[:1] in ("+", "-"):
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]

    if not raw:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(raw):
        match = _COMPONENT.match(raw, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        value, unit = match.groups()
        total += float(value) * _UNITS[unit]
        pos = match.end()

    try:
        return timedelta(seconds=sign * total)
    except OverflowError:
        raise ValueError(f"invalid duration {text!r}: out of range") from None


def format_duration(value: timedelta) -> str:
    """Render a timedelta compactly, e.g. ``1h30m`` or ``45s``."""
    seconds = value.total_seconds()
    if seconds and seconds < 1:
        return f"{seconds * 1000:g}ms"

    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return "".join(parts)
