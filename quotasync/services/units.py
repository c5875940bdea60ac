"""
Size token parsing.

Converts human-readable sizes such as ``12.5 GiB`` or rclone's ``2.5Mi`` into
exact byte counts. Units are binary (powers of 1024); decimal-prefixed
suffixes like ``MB`` are rejected rather than guessed.
"""
import re
from decimal import (
    Context,
    Decimal,
    InvalidOperation,
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    ROUND_HALF_UP,
    localcontext,
)
from enum import Enum
from typing import Union

from ..errors import UnitParseError


class SizeUnit(Enum):
    """Binary size units, valued by their power of 1024."""
    B = 0
    KiB = 1
    MiB = 2
    GiB = 3
    TiB = 4
    PiB = 5

    @property
    def multiplier(self) -> int:
        return 1024 ** self.value


_UNIT_ALIASES = {
    "": SizeUnit.B,
    "b": SizeUnit.B,
    "byte": SizeUnit.B,
    "bytes": SizeUnit.B,
}
for _unit in SizeUnit:
    if _unit is SizeUnit.B:
        continue
    _UNIT_ALIASES[_unit.name.lower()] = _unit        # kib, mib, ...
    _UNIT_ALIASES[_unit.name[:2].lower()] = _unit    # ki, mi, ...

_TOKEN_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")


def exact_context():
    """Decimal context in which additions and multiplications never round."""
    return localcontext(Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN))


def parse_unit(suffix: str) -> SizeUnit:
    """Resolve a unit suffix, case-insensitively."""
    unit = _UNIT_ALIASES.get(suffix.strip().lower())
    if unit is None:
        raise UnitParseError(f"unknown size unit: {suffix!r}")
    return unit


def exact_bytes(value: Union[Decimal, str, int], unit: SizeUnit) -> Decimal:
    """Byte count without rounding; use when accumulating several tokens."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal number: {value!r}") from exc
    if amount < 0:
        raise ValueError(f"size must be non-negative: {value!r}")
    with exact_context():
        return amount * unit.multiplier


def round_bytes(amount: Decimal) -> int:
    """Round an exact byte amount to the nearest whole byte."""
    with exact_context():
        return int(amount.to_integral_value(rounding=ROUND_HALF_UP))


def to_bytes(value: Union[Decimal, str, int], unit: SizeUnit) -> int:
    return round_bytes(exact_bytes(value, unit))


def parse_size_exact(token: str) -> Decimal:
    match = _TOKEN_RE.match(token or "")
    if not match:
        raise ValueError(f"not a size token: {token!r}")
    number, suffix = match.groups()
    return exact_bytes(Decimal(number), parse_unit(suffix))


def parse_size(token: str) -> int:
    """
    Parse a size token into bytes.

    Examples:
        >>> parse_size("12.5 GiB")
        13421772800
        >>> parse_size("2.5Mi")
        2621440
        >>> parse_size("512")
        512
    """
    return round_bytes(parse_size_exact(token))


def format_bytes(value: int) -> str:
    """Render a byte count with a binary unit, keeping the sign."""
    sign = "-" if value < 0 else ""
    size = float(abs(value))
    units = list(SizeUnit)
    idx = 0
    while size >= 1024.0 and idx < len(units) - 1:
        size /= 1024.0
        idx += 1
    if idx == 0:
        return f"{sign}{int(size)} B"
    return f"{sign}{size:.2f} {units[idx].name}"
