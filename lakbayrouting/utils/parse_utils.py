"""
Parsing helpers for loosely-typed directory payloads and user search settings
"""

import math
import numbers
import re
from typing import Any, Iterable, List, Optional, Union

from ..exceptions import ConfigError

# Leading number, optionally behind a peso sign, followed by anything ("35 min", "8.5 km", "₱15")
_LEADING_NUMBER = re.compile(r'^\s*(?:₱|php)?\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))', re.IGNORECASE)
_WALK_DISTANCE = re.compile(r'^\s*(\d+(?:\.\d*)?|\.\d+)\s*(km|m)?\s*$', re.IGNORECASE)


def coerce_number(value: Any) -> Optional[float]:
    """Convert a number-ish value to float, or None when it cannot be trusted.

    Accepts ints, floats and strings that start with a number. Booleans, empty
    strings, NaN and infinities are rejected so they never reach scoring.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return None
        number = float(match.group(1))
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_max_walk(value: Union[str, int, float]) -> float:
    """Parse a max-walk setting into kilometers.

    ``"500m"`` -> 0.5, ``"1.5km"`` -> 1.5, ``"2"`` -> 2.0 (unsuffixed means km).
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid max walk distance: {value!r}")
    if isinstance(value, (int, float)):
        km = float(value)
    elif isinstance(value, str):
        match = _WALK_DISTANCE.match(value)
        if not match:
            raise ConfigError(f"Invalid max walk distance: {value!r}")
        km = float(match.group(1))
        if (match.group(2) or 'km').lower() == 'm':
            km = km / 1000.0
    else:
        raise ConfigError(f"Invalid max walk distance: {value!r}")
    if math.isnan(km) or math.isinf(km) or km < 0:
        raise ConfigError(f"Invalid max walk distance: {value!r}")
    return km


def parse_max_transfers(value: Any) -> int:
    """Parse the max-transfers setting; any non-negative integer is accepted"""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid max transfers: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid max transfers: {value!r}")
    if math.isnan(number) or not number.is_integer() or number < 0:
        raise ConfigError(f"Invalid max transfers: {value!r}")
    return int(number)


def parse_modes(value: Union[str, Iterable[str], None]) -> List[str]:
    """Normalise mode tokens: lower-case, stripped, de-duplicated, order kept"""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(',')
    else:
        raw = list(value)
    tokens = []
    for item in raw:
        if not isinstance(item, str):
            raise ConfigError(f"Invalid mode token: {item!r}")
        token = item.strip().lower()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def pick(record: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present key among aliases"""
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default
