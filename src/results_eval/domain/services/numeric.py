"""Small null-tolerant numeric helpers shared by the pipeline stages."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional


def is_finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings; anything else becomes ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def change(current: Optional[float], base: Optional[float]) -> Optional[float]:
    if not is_finite(current) or not is_finite(base):
        return None
    return current - base


def pct_change(current: Optional[float], base: Optional[float]) -> Optional[float]:
    """Percent change against ``|base|``; a zero or missing base is undefined."""
    if not is_finite(current) or not is_finite(base) or base == 0:
        return None
    return (current - base) / abs(base) * 100


def round_fixed(value: float, digits: int = 2) -> float:
    """Round half away from zero on the exact binary value, like ``Number.toFixed``."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))
