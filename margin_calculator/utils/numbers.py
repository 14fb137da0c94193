"""
Numeric input coercion.

Edits arrive from form fields as strings, numbers or nothing at all.
Anything that is not a finite number clears the field instead of failing.
"""

from __future__ import annotations

import math
from typing import Any


def coerce_amount(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None when it is empty or unparsable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def coerce_target(value: Any) -> float:
    """Targets never go absent: an unusable value falls back to 0."""
    number = coerce_amount(value)
    return 0.0 if number is None else number
