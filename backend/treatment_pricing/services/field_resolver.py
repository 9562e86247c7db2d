"""
field_resolver.py — first-match-wins resolution over legacy/alternate field names.

Templates and inventory records carry several names for the same logical
value (``header_allowance`` vs ``header_hem``, ``fabric_width_cm`` vs
``fabric_width``).  Every cascade in the engines goes through
``resolve_first`` instead of repeating ``a or b or c`` chains inline.
"""

import math
from typing import Any, Callable, Iterable, Mapping, Optional, Union

Candidate = Union[Any, Callable[[], Any]]


def to_number(value: Any) -> Optional[float]:
    """
    Lenient numeric parse.

    Numbers and numeric strings ("8", " 12.5 ") parse; None, blanks, booleans,
    NaN/inf and anything unparseable return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def resolve_first(
    candidates: Iterable[Candidate],
    fallback: Optional[float] = 0.0,
    *,
    positive: bool = False,
) -> Optional[float]:
    """
    Return the first usable number among ``candidates``, else ``fallback``.

    Candidates may be plain values or zero-argument callables; callables are
    only invoked when every earlier candidate was unusable.  With
    ``positive=True`` zero and negative values are skipped as well.
    """
    for candidate in candidates:
        raw = candidate() if callable(candidate) else candidate
        number = to_number(raw)
        if number is None:
            continue
        if positive and number <= 0:
            continue
        return number
    return fallback


def safe_ceil(value: float) -> int:
    """math.ceil that ignores float noise (5.000000000001 -> 5)."""
    return math.ceil(round(value, 9))


def safe_floor(value: float) -> int:
    """math.floor that ignores float noise (3.999999999999 -> 4)."""
    return math.floor(round(value, 9))


def get_field(record: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping, a pydantic model or any attribute bag."""
    if record is None:
        return default
    if isinstance(record, Mapping):
        value = record.get(name, default)
    else:
        value = getattr(record, name, default)
    return default if value is None else value
