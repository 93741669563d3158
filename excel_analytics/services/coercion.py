"""Single numeric-coercion rule shared by the parser, profiler and series builder."""

from __future__ import annotations

import math
import re
from numbers import Number
from typing import Any, Optional, Union

import numpy as np

# Plain decimal / exponent literals only: no "_" separators, no inf/nan, no hex.
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def _normalise(number: float) -> Union[int, float]:
    if number.is_integer():
        return int(number)
    return number


def try_parse_finite_number(value: Any) -> Optional[Union[int, float]]:
    """
    Return ``value`` as a finite int/float, or None when it is not one.

    Booleans are never numbers here, even though ``bool`` subclasses ``int``.
    Strings are stripped first and must be a complete numeric literal.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, np.generic):
        value = value.item()

    if isinstance(value, int):
        return value

    if isinstance(value, Number):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return _normalise(number) if math.isfinite(number) else None

    if isinstance(value, str):
        text = value.strip()
        if not text or not _NUMBER_RE.match(text):
            return None
        number = float(text)
        return _normalise(number) if math.isfinite(number) else None

    return None


def is_present(value: Any) -> bool:
    """True unless the value is None, NaN or the empty string."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, float) and math.isnan(value):
        return False
    return True


def to_label(value: Any) -> str:
    """Display text for an axis label: ``2024.0`` -> ``"2024"``, ``True`` -> ``"true"``."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value):
        return str(_normalise(value))
    return str(value)
