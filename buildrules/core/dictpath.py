# buildrules/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["splitPath", "getByPath", "setByPath"]



def splitPath(path: str) -> list[str]:
    """
    Splits a dotted settings path into segments.

    Examples:
      - resolution.mode      -> ["resolution", "mode"]
      - logging.file         -> ["logging", "file"]
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    parts = path.split(".")
    # Empty segment means a leading/trailing or doubled separator, e.g. a..b or a.b.
    if any(part == "" for part in parts):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



def getByPath(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Return the value at path, or default when any segment is missing."""
    node: Any = data
    for part in splitPath(path):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node



def setByPath(data: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Set value at path, creating intermediate objects as needed."""
    parts = splitPath(path)
    node: MutableMapping[str, Any] = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, MutableMapping):
            if child is not None:
                raise TypeError(f"Cannot descend into non-object at segment '{part}' of path '{path}'")
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value
