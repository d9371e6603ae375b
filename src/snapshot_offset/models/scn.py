"""
System Change Number (SCN) helpers
SCNs are plain Python ints (arbitrary precision); None is the NULL SCN
"""

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

ScnValue = Union[int, str, Decimal, None]

SCN_KEY = "scn"


def parse_scn(value: ScnValue) -> Optional[int]:
    """
    Convert a driver value into an SCN

    Args:
        value: SCN as returned by the database (int, numeric string, Decimal)

    Returns:
        SCN as int, or None for NULL/blank values

    Raises:
        ValueError: If the value is not a whole, non-negative number
    """
    if value is None:
        return None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None

    try:
        scn = int(Decimal(value))
    except ArithmeticError as e:
        raise ValueError(f"Invalid SCN value: {value!r}") from e

    if scn != Decimal(value):
        raise ValueError(f"SCN must be a whole number: {value!r}")
    if scn < 0:
        raise ValueError(f"SCN must be non-negative: {value!r}")

    return scn


def compare_scn(first: Optional[int], second: Optional[int]) -> int:
    """
    Three-way SCN comparison where NULL sorts before any known SCN

    Returns:
        Negative, zero or positive like a classic comparator
    """
    if first is None and second is None:
        return 0
    if first is None:
        return -1
    if second is None:
        return 1
    return (first > second) - (first < second)


def resolve_scn(document: Mapping[str, Any]) -> int:
    """
    Read the SCN recorded in an offset document

    A missing entry resolves to 0 so documents written before the
    first SCN was known still order before everything else.
    """
    scn = parse_scn(document.get(SCN_KEY))
    return 0 if scn is None else scn


def is_position_at_or_before(recorded: Mapping[str, Any], desired: Mapping[str, Any]) -> bool:
    """Whether the recorded offset position is at or before the desired one"""
    return compare_scn(resolve_scn(recorded), resolve_scn(desired)) <= 0
