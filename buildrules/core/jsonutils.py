# buildrules/core/jsonutils.py
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = ["safeJsonDumps", "tryJSONify"]



def safeJsonDumps(obj: object, *, indent: int | None = None) -> str:
    """
    Serializes an object to a JSON string.
    Compact (",", ":") separators unless indent is given; NaN/infinity are rejected.
    If direct JSON encoding fails, falls back to tryJSONify and retries.
    """
    separators = (",", ":") if indent is None else None
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=separators, indent=indent)
    except (TypeError, ValueError):
        return json.dumps(tryJSONify(obj), ensure_ascii=False, allow_nan=False, separators=separators, indent=indent)



def tryJSONify(value: Any, *, _depth: int = 0, _maxDepth: int = 32) -> Any:
    """Best-effort conversion of enums, paths, dataclasses, sets and exceptions to JSON-safe values."""
    if _depth > _maxDepth:
        return "<max depth>"
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if value == value and value not in (float("inf"), float("-inf")) else str(value)
    if isinstance(value, Enum):
        return tryJSONify(value.value, _depth=_depth + 1, _maxDepth=_maxDepth)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseException):
        return {"type": type(value).__name__, "message": str(value)}
    if is_dataclass(value) and not isinstance(value, type):
        return tryJSONify(asdict(value), _depth=_depth + 1, _maxDepth=_maxDepth)
    if isinstance(value, Mapping):
        return {str(key): tryJSONify(item, _depth=_depth + 1, _maxDepth=_maxDepth) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [tryJSONify(item, _depth=_depth + 1, _maxDepth=_maxDepth) for item in value]
        try:
            return sorted(items)
        except TypeError:
            return items
    if isinstance(value, (list, tuple)):
        return [tryJSONify(item, _depth=_depth + 1, _maxDepth=_maxDepth) for item in value]
    return repr(value)
