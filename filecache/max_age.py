"""
Conversion of flexible max age inputs to milliseconds.
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Tuple, Union

from .exceptions import InvalidDurationError

MaxAge = Union[int, float, str, Mapping]

# long name, short name, milliseconds per unit
_UNITS: Tuple[Tuple[str, str, int], ...] = (
    ("days", "d", 86_400_000),
    ("hours", "h", 3_600_000),
    ("minutes", "m", 60_000),
    ("seconds", "s", 1_000),
    ("milliseconds", "ms", 1),
)
_UNIT_NAMES = frozenset(name for long, short, _ in _UNITS for name in (long, short))
_DURATION_RE = re.compile(r"\s*(\d+)\s*([a-z]+)\s*")


def _from_string(value: str) -> int:
    match = _DURATION_RE.fullmatch(value)
    if match is None or match.group(2) not in _UNIT_NAMES:
        raise InvalidDurationError("Invalid maxAge string")
    return _from_mapping({match.group(2): int(match.group(1))})


def _from_mapping(value: Mapping) -> Union[int, float]:
    unknown = sorted(str(key) for key in value if key not in _UNIT_NAMES)
    if unknown:
        raise InvalidDurationError(f"Unknown maxAge units: {', '.join(unknown)}")

    total: Union[int, float] = 0
    for long, short, factor in _UNITS:
        amount = value.get(long)
        if amount is None:
            amount = value.get(short, 0)
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidDurationError(f"maxAge field '{long}' must be a number")
        total += amount * factor
    return _checked(total)


def _checked(total: Union[int, float]) -> Union[int, float]:
    if math.isnan(total) or total < 0:
        raise InvalidDurationError(f"maxAge must be a non-negative number, got {total!r}")
    return total


def max_age_to_ms(max_age: MaxAge) -> Union[int, float]:
    """
    Convert a max age to milliseconds.

    Numbers are taken as milliseconds. Strings look like ``"15 seconds"`` or
    ``"1 m"``. Mappings may combine ``days/d``, ``hours/h``, ``minutes/m``,
    ``seconds/s`` and ``milliseconds/ms`` and are summed; when both names of a
    unit are present the long one is used.
    """
    if isinstance(max_age, bool):
        raise InvalidDurationError("maxAge must not be a boolean")
    if isinstance(max_age, (int, float)):
        return _checked(max_age)
    if isinstance(max_age, str):
        return _from_string(max_age)
    if isinstance(max_age, Mapping):
        return _from_mapping(max_age)
    raise InvalidDurationError(f"Unsupported maxAge type: {type(max_age).__name__}")
