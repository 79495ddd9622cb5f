"""Duration parsing and formatting in the ``1h2m3.5s`` style, and RFC 3339 timestamps."""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

_NS_PER_SECOND = 10**9
_NS_PER_MINUTE = 60 * _NS_PER_SECOND

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": _NS_PER_SECOND,
    "m": _NS_PER_MINUTE,
    "h": 60 * _NS_PER_MINUTE,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _to_ns(value: timedelta) -> int:
    return (value // timedelta(microseconds=1)) * 1_000


def _from_ns(ns: int) -> timedelta:
    magnitude = abs(ns) // 1_000
    return timedelta(microseconds=magnitude if ns >= 0 else -magnitude)


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``300ms``, ``-1.5h`` or ``2h45m``.

    Raises ValueError when the text is not a valid duration.
    """
    original = text
    if not text:
        raise ValueError(f"invalid duration {original!r}")
    negative = False
    if text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        try:
            number = Decimal(match.group(1))
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {original!r}") from exc
        total += number * _UNITS[match.group(2)]
        pos = match.end()

    ns = int(total)
    return _from_ns(-ns if negative else ns)


def _decimal(value: int, precision: int) -> str:
    whole, fraction = divmod(value, 10**precision)
    digits = str(fraction).rjust(precision, "0").rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(value: timedelta) -> str:
    """Render a duration as ``1h2m3.5s``, ``1.5ms``, ``0s`` and so on."""
    ns = _to_ns(value)
    sign = "-" if ns < 0 else ""
    magnitude = abs(ns)

    if magnitude < _NS_PER_SECOND:
        if magnitude == 0:
            return "0s"
        if magnitude < 1_000:
            body = f"{magnitude}ns"
        elif magnitude < 1_000_000:
            body = _decimal(magnitude, 3) + "µs"
        else:
            body = _decimal(magnitude, 6) + "ms"
        return sign + body

    body = _decimal(magnitude % _NS_PER_MINUTE, 9) + "s"
    minutes = magnitude // _NS_PER_MINUTE
    if minutes:
        body = f"{minutes % 60}m{body}"
        hours = minutes // 60
        if hours:
            body = f"{hours}h{body}"
    return sign + body


def round_duration(value: timedelta, unit: timedelta) -> timedelta:
    """Round to the nearest multiple of unit, halves away from zero.

    A unit of zero or less returns the value unchanged.
    """
    ns = _to_ns(value)
    step = _to_ns(unit)
    if step <= 0:
        return value
    remainder = abs(ns) % step
    if remainder + remainder < step:
        magnitude = abs(ns) - remainder
    else:
        magnitude = abs(ns) + step - remainder
    return _from_ns(magnitude if ns >= 0 else -magnitude)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339 with whole seconds; naive values are local time."""
    if value.tzinfo is None:
        value = value.astimezone()
    offset = value.utcoffset() or timedelta(0)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if offset == timedelta(0):
        return text + "Z"
    total_minutes = int(offset.total_seconds()) // 60
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"