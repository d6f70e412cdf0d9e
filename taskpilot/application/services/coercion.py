"""
Field-level coercion for model-produced values.

Decoded JSON is validated field by field: numbers are clamped into range,
enum-like strings are checked against a whitelist and replaced by a default
when unknown, and loose values are normalised to strings or string lists.
The ``Annotated`` aliases at the bottom are what the result models use.
"""

from functools import partial
from typing import Any, Iterable, List, Literal

from pydantic import BeforeValidator
from typing_extensions import Annotated


def clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Coerce ``value`` to an int inside ``[low, high]``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def clamp_float(value: Any, low: float, high: float, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(low, min(high, number))


def pick(value: Any, allowed: Iterable[str], default: str) -> str:
    """Return ``value`` lower-cased if whitelisted, else ``default``."""
    if not isinstance(value, str):
        return default
    normalized = value.strip().lower()
    return normalized if normalized in allowed else default


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [as_text(item) for item in value if as_text(item)]


def as_sequence(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def as_list(value: Any) -> List[Any]:
    """Non-list values become an empty list; non-dict items are dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


LEVELS = ("high", "medium", "low")
PRIORITIES = ("urgent", "high", "medium", "low")
HEALTH_STATUSES = ("healthy", "needs_attention", "at_risk", "critical")

Percentage = Annotated[int, BeforeValidator(partial(clamp_int, low=0, high=100, default=0))]
Score = Annotated[int, BeforeValidator(partial(clamp_int, low=0, high=100, default=50))]
NonNegativeInt = Annotated[
    int, BeforeValidator(partial(clamp_int, low=0, high=10_000, default=0))
]
Hours = Annotated[
    float, BeforeValidator(partial(clamp_float, low=0.0, high=1_000.0, default=1.0))
]
Weight = Annotated[
    float, BeforeValidator(partial(clamp_float, low=0.0, high=1.0, default=0.0))
]
Level = Annotated[
    Literal["high", "medium", "low"],
    BeforeValidator(partial(pick, allowed=LEVELS, default="medium")),
]
Priority = Annotated[
    Literal["urgent", "high", "medium", "low"],
    BeforeValidator(partial(pick, allowed=PRIORITIES, default="medium")),
]
HealthStatus = Annotated[
    Literal["healthy", "needs_attention", "at_risk", "critical"],
    BeforeValidator(partial(pick, allowed=HEALTH_STATUSES, default="needs_attention")),
]
Text = Annotated[str, BeforeValidator(as_text)]
TextList = Annotated[List[str], BeforeValidator(as_text_list)]
IndexList = Annotated[List[NonNegativeInt], BeforeValidator(as_sequence)]
