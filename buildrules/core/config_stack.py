# buildrules/core/config_stack.py
from __future__ import annotations
from typing import Any, Literal, cast
from collections.abc import Mapping
from dataclasses import dataclass, field
import copy

from buildrules.core.dictpath import getByPath, setByPath

__all__ = [
    "MergeStrategy", "mergeWithStrategy", "ConfigScope", "SCOPE_ORDER",
    "ConfigLayer", "ConfigStack", "ConfigView",
]



MergeStrategy = Literal["deep", "replace", "append", "uniqueAppend"]
_OBJECT_STRATEGIES: tuple[str, ...] = ("deep", "replace")
_LIST_STRATEGIES: tuple[str, ...] = ("replace", "append", "uniqueAppend")

ConfigScope = Literal["defaults", "plugin", "invocation"]
# Lowest precedence first
SCOPE_ORDER: tuple[ConfigScope, ...] = ("defaults", "plugin", "invocation")



def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Deep merge with optional directives:
      - dicts: {"__merge": "replace"} replaces left entirely (minus the directive),
        default "deep" recurses into nested dicts
      - lists: a sibling key {"items": [...], "items__merge": "append"} selects
        "replace" (default), "append" or "uniqueAppend"
      - scalars: right replaces left
    Inputs are never mutated.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        strategy = cast(MergeStrategy, right.get("__merge", "deep"))
        _validateMergeStrategy(strategy, context="object", allowed=_OBJECT_STRATEGIES)
        if strategy == "replace":
            return {key: copy.deepcopy(value) for key, value in right.items() if key != "__merge"}

        out: dict[str, Any] = {key: copy.deepcopy(value) for key, value in left.items()}
        for key, rightValue in right.items():
            if key == "__merge" or key.endswith("__merge"):
                continue
            leftValue = out.get(key)
            listStrategyKey = f"{key}__merge"
            if listStrategyKey in right:
                if not isinstance(rightValue, list):
                    raise ValueError(f'"{listStrategyKey}" only applies to list values')
                listStrategy = cast(MergeStrategy, right[listStrategyKey])
                _validateMergeStrategy(listStrategy, context=f'key "{key}"', allowed=_LIST_STRATEGIES)
                out[key] = _mergeLists(leftValue, rightValue, listStrategy)
                continue
            if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
                out[key] = mergeWithStrategy(leftValue, rightValue)
            else:
                out[key] = copy.deepcopy(rightValue)
        return out
    return copy.deepcopy(right)



def _mergeLists(left: Any, right: list[Any], strategy: MergeStrategy) -> list[Any]:
    left = list(left or [])
    right = list(right)
    if strategy == "append":
        return left + right
    if strategy == "uniqueAppend":
        out = left[:]
        for item in right:
            if item not in out:
                out.append(item)
        return out
    return right



def _validateMergeStrategy(strategy: str, *, context: str, allowed: tuple[str, ...]) -> None:
    if strategy not in allowed:
        raise ValueError(f"Invalid __merge='{strategy}' in {context}; allowed: {', '.join(allowed)}")



@dataclass(frozen=True)
class ConfigLayer:
    """
    One immutable configuration layer.
    - name: human readable (e.g. "defaults", a settings file path, "cli")
    - scope: "defaults" | "plugin" | "invocation"
    - data: plain JSON-like dict
    """
    name: str
    scope: ConfigScope
    data: dict[str, Any] = field(default_factory=dict)



class ConfigStack:
    """
    An ordered set of layers with fixed scope precedence.
    Create one per resolution invocation.
    """
    def __init__(self, layers: list[ConfigLayer] | None = None):
        self._layers: list[ConfigLayer] = []
        self._version: int = 0
        for layer in layers or ():
            self.addLayer(layer)

    def addLayer(self, layer: ConfigLayer) -> None:
        if layer.scope not in SCOPE_ORDER:
            raise ValueError(f"Unknown config scope {layer.scope!r}; allowed: {', '.join(SCOPE_ORDER)}")
        self._layers.append(layer)
        self._version += 1

    def layers(self) -> list[ConfigLayer]:
        return list(self._layers)

    def version(self) -> int:
        return self._version

    def view(self) -> ConfigView:
        return ConfigView(stack=self)

    def setOverrides(self, entries: Mapping[str, Any], *, name: str = "overrides") -> None:
        """Add an invocation layer from dotted-path entries; None values are skipped."""
        data: dict[str, Any] = {}
        for path, value in entries.items():
            if value is not None:
                setByPath(data, path, value)
        if data:
            self.addLayer(ConfigLayer(name=name, scope="invocation", data=data))



class ConfigView:
    """A merged, cached view on a ConfigStack."""
    def __init__(self, *, stack: ConfigStack) -> None:
        self._stack = stack
        self._effective: dict[str, Any] | None = None
        self._effectiveVersion: int = -1

    def effective(self) -> dict[str, Any]:
        # Recompute if cache is empty or stack has changed.
        if self._effective is not None and self._effectiveVersion == self._stack.version():
            return self._effective
        merged: dict[str, Any] = {}
        for scope in SCOPE_ORDER:
            for layer in self._stack.layers():
                if layer.scope != scope:
                    continue
                merged = mergeWithStrategy(merged, layer.data)
        self._effective = merged
        self._effectiveVersion = self._stack.version()
        return merged

    def get(self, path: str, default: Any = None) -> Any:
        val = getByPath(self.effective(), path)
        return default if val is None else val
