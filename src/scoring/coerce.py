"""Lenient decoding of untyped JSON signal values.

Backend payloads mix types freely: booleans arrive as ``"1"``/``"true"``,
numbers as strings, whole sections may be missing. These helpers never raise;
anything unrecognised decodes to a neutral default.
"""

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

_TRUTHY_STRINGS = frozenset({"1", "true", "yes"})
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_PREFIXED_INT_RE = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)", re.ASCII)


def to_bool(value: Any) -> bool:
    """Decode a flag. Strings are truthy only for "1", "true", "yes"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return False


def to_number(value: Any) -> float:
    """Decode a finite number, 0 for anything else (bools included).

    Strings follow JavaScript ``Number()``: decimal with optional exponent,
    or an unsigned ``0x``/``0o``/``0b`` integer. No digit separators.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _PREFIXED_INT_RE.fullmatch(text):
            try:
                return float(int(text, 0))
            except OverflowError:
                return 0.0
        if not _DECIMAL_RE.fullmatch(text):
            return 0.0
        parsed = float(text)
        return parsed if math.isfinite(parsed) else 0.0
    return 0.0


def read_nested(obj: Any, path: Sequence[str]) -> Any:
    """Walk ``obj[path[0]][path[1]]...``; None as soon as a hop is not a mapping."""
    current = obj
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}
