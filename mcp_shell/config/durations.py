"""
Duration strings in the ``30s`` / ``1m30s`` / ``250ms`` notation.

Configuration files express timeouts in this notation and tool responses
report execution times with it.
"""

import re

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # micro sign
    "μs": 1e-6,  # greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000
_NS_PER_M = 60 * _NS_PER_S
_NS_PER_H = 60 * _NS_PER_M


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds.

    Args:
        text: A sequence of decimal numbers each followed by a unit
            (``ns``, ``us``, ``ms``, ``s``, ``m``, ``h``), optionally signed.
            The bare string ``"0"`` is accepted.

    Returns:
        The duration in seconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    original = text
    text = text.strip()
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    sign = 1.0
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    return sign * total


def _with_fraction(value_ns: int, unit_ns: int, digits: int) -> str:
    whole, frac = divmod(value_ns, unit_ns)
    if frac == 0:
        return str(whole)
    return f"{whole}.{str(frac).zfill(digits).rstrip('0')}"


def format_duration(seconds: float) -> str:
    """Render a duration the way ``30s``, ``1m0s`` or ``123.456ms`` read."""
    total_ns = int(round(seconds * _NS_PER_S))
    if total_ns == 0:
        return "0s"

    sign = "-" if total_ns < 0 else ""
    ns = abs(total_ns)

    if ns < _NS_PER_US:
        return f"{sign}{ns}ns"
    if ns < _NS_PER_MS:
        return f"{sign}{_with_fraction(ns, _NS_PER_US, 3)}µs"
    if ns < _NS_PER_S:
        return f"{sign}{_with_fraction(ns, _NS_PER_MS, 6)}ms"

    hours, rest = divmod(ns, _NS_PER_H)
    minutes, rest = divmod(rest, _NS_PER_M)
    text = f"{_with_fraction(rest, _NS_PER_S, 9)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text
