"""Imperial catch weights: total ounces <-> ``"<p> lb <o> oz"``."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, NamedTuple, Optional

OUNCES_PER_POUND = 16
ZERO_WEIGHT = "0 lb 0 oz"

_LB_OZ_RE = re.compile(r"([0-9]+)\s*lb\s*([0-9]+)\s*oz", re.IGNORECASE)
# Leading numeric prefix, read the way browsers read parseFloat()
_NUMBER_PREFIX_RE = re.compile(r"^\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


class WeightDisplay(NamedTuple):
    pounds: int
    ounces: int
    total_ounces: int


def to_ounces(pounds: int, ounces: int) -> int:
    """Combine pounds and ounces into total ounces.

    Ounce values of 16 or more simply carry into the pound count.
    """
    return int(pounds) * OUNCES_PER_POUND + int(ounces)


def from_ounces(total_ounces: int) -> WeightDisplay:
    pounds, ounces = divmod(int(total_ounces), OUNCES_PER_POUND)
    return WeightDisplay(pounds, ounces, int(total_ounces))


def _round_half_up(value) -> int:
    if isinstance(value, int):
        return value
    return int(math.floor(value + 0.5))


def _leading_number(text: str) -> Optional[float]:
    match = _NUMBER_PREFIX_RE.match(text)
    if not match:
        return None
    return float(match.group(1))


def _as_number(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        # exact, however large
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        number = _leading_number(value)
        if number is None:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def try_parse_weight(value: Any) -> Optional[int]:
    """Parse a weight into total ounces, or ``None`` when it cannot be read.

    ``"12 lb 3 oz"`` style text (any case, loose spacing) is recognised
    anywhere in the string. Anything else is read as a bare ounce count
    from its leading number, rounded to the nearest ounce. Negative weights
    are rejected.
    """
    if isinstance(value, str):
        match = _LB_OZ_RE.search(value)
        if match:
            return to_ounces(int(match.group(1)), int(match.group(2)))
    number = _as_number(value)
    if number is None or number < 0:
        return None
    return _round_half_up(number)


def parse_weight(value: Any) -> int:
    """Display-safe parse: unreadable weights count as zero."""
    parsed = try_parse_weight(value)
    return parsed if parsed is not None else 0


def format_weight(value: Any) -> str:
    """Render total ounces as ``"<p> lb <o> oz"``.

    Strings that already mention ``lb`` are returned untouched. Unreadable,
    zero and negative values render as ``"0 lb 0 oz"``.
    """
    if isinstance(value, str) and "lb" in value:
        return value
    number = _as_number(value)
    if number is None or number <= 0:
        return ZERO_WEIGHT
    display = from_ounces(_round_half_up(number))
    return f"{display.pounds} lb {display.ounces} oz"


def sum_weights(values: Iterable[Any]) -> int:
    """Total a mix of display strings and ounce counts."""
    total = 0
    for value in values:
        if isinstance(value, str):
            total += parse_weight(value)
        else:
            number = _as_number(value)
            if number is not None:
                total += _round_half_up(number)
    return total


__all__ = [
    "OUNCES_PER_POUND",
    "WeightDisplay",
    "ZERO_WEIGHT",
    "format_weight",
    "from_ounces",
    "parse_weight",
    "sum_weights",
    "to_ounces",
    "try_parse_weight",
]
