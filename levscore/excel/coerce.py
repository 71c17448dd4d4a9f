from __future__ import annotations

import math
import numbers
import re
from typing import Any

"""Cell value coercion for supplier uploads.

Coercion never raises. Unparseable numbers become 0 and blank text becomes
None, so a bad cell cannot block the rest of an import. The flip side is that
an explicit zero and an unreadable number look the same afterwards.
"""

__all__ = [
    "parse_numeric_value",
    "parse_string_value",
    "cell_text",
]

_WHITESPACE = re.compile(r"\s")
_NON_NUMERIC = re.compile(r"[^\d.\-]")
# Longest leading decimal literal, mirroring what a browser parseFloat accepts
_FLOAT_PREFIX = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return isinstance(value, float) and math.isnan(value)


def cell_text(value: Any) -> str:
    """Render a raw cell as text; integral floats lose their trailing '.0'."""
    if isinstance(value, numbers.Real) and not isinstance(value, (bool, numbers.Integral)):
        as_float = float(value)
        if math.isfinite(as_float) and as_float.is_integer():
            return str(int(as_float))
    return str(value)


def parse_numeric_value(value: Any) -> float:
    """Coerce a cell to a number.

    Native numbers pass through. Text has its whitespace removed, the first
    comma turned into a decimal point and the first percent sign dropped;
    anything left that is not a digit, point or minus is discarded before the
    leading decimal literal is read.

    >>> parse_numeric_value("1 234,56")
    1234.56
    >>> parse_numeric_value("abc")
    0
    """
    if _is_missing(value):
        return 0
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if isinstance(value, numbers.Integral):
            return int(value)
        as_float = float(value)
        return as_float if math.isfinite(as_float) else 0

    text = _WHITESPACE.sub("", str(value))
    text = text.replace(",", ".", 1).replace("%", "", 1)
    text = _NON_NUMERIC.sub("", text)
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return 0
    return float(match.group(0))


def parse_string_value(value: Any, max_length: int | None = None) -> str | None:
    """Trimmed text of a cell, or None when the cell is blank."""
    if _is_missing(value):
        return None
    text = cell_text(value).strip()
    if not text:
        return None
    if max_length is not None:
        text = text[:max_length]
    return text
