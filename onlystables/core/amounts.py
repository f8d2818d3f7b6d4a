"""Fixed-point conversion between decimal strings and token minor units."""

from __future__ import annotations

import re

from .errors import InvalidAmountError

USDT_DECIMALS = 6

_DECIMAL_RE = re.compile(r"^([0-9]*)(?:\.([0-9]*))?$")


def to_minor_units(value: str, decimals: int) -> int:
    """Convert ``"10.5"`` into ``10500000`` for a 6-decimal token.

    Only string arithmetic is used. Fractional digits beyond ``decimals`` are
    truncated, not rounded.
    """

    if decimals < 0:
        raise ValueError("decimals must be non-negative")

    text = (value or "").strip()
    match = _DECIMAL_RE.fullmatch(text)
    if not match or not any(ch in "0123456789" for ch in text):
        raise InvalidAmountError(value)

    integer_part, fraction_part = match.group(1), match.group(2) or ""
    fraction_part = fraction_part[:decimals].ljust(decimals, "0")

    scale = 10 ** decimals
    return int(integer_part or "0") * scale + int(fraction_part or "0")


def from_minor_units(value: int, decimals: int) -> str:
    """Convert ``10500000`` back into ``"10.5"`` for a 6-decimal token."""

    if value < 0:
        raise ValueError("minor-unit amounts cannot be negative")
    if decimals == 0:
        return str(value)

    integer_part, fraction_part = divmod(value, 10 ** decimals)
    fraction = str(fraction_part).rjust(decimals, "0").rstrip("0")
    if not fraction:
        return str(integer_part)
    return f"{integer_part}.{fraction}"


__all__ = ["USDT_DECIMALS", "to_minor_units", "from_minor_units"]
