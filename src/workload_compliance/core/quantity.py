"""Kubernetes resource quantity parsing.

Supports the suffixes accepted by the Kubernetes API server:
- Binary SI: Ki, Mi, Gi, Ti, Pi, Ei
- Decimal SI: n, u, m, k, M, G, T, P, E
- Decimal exponent notation: 1e3, 2.5E-1
"""

import re
from decimal import Decimal, InvalidOperation

_BINARY_SUFFIXES: dict[str, int] = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

_DECIMAL_SUFFIXES: dict[str, Decimal] = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
}

_QUANTITY_PATTERN = re.compile(
    r"^(?P<number>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E)?$"
)


def parse_quantity(value: str | int | float) -> Decimal | None:
    """Parse a Kubernetes quantity into a Decimal in base units.

    Args:
        value: Quantity string (e.g. "500m", "128Mi") or a plain number.

    Returns:
        The quantity as a Decimal, or None if the value cannot be parsed.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
    if not isinstance(value, str):
        return None

    match = _QUANTITY_PATTERN.match(value.strip())
    if match is None:
        return None

    try:
        number = Decimal(match.group("number"))
    except InvalidOperation:
        return None

    suffix = match.group("suffix") or ""
    multiplier = _BINARY_SUFFIXES.get(suffix) or _DECIMAL_SUFFIXES[suffix]
    try:
        return number * multiplier
    except ArithmeticError:
        # Exponent beyond the decimal context (e.g. "1e999999k")
        return None


def is_positive_quantity(value: str | int | float) -> bool:
    """Return True when the value parses to a finite quantity greater than zero."""
    parsed = parse_quantity(value)
    return parsed is not None and parsed.is_finite() and parsed > 0
