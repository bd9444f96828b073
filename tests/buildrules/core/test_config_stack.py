# tests/buildrules/core/test_config_stack.py
from __future__ import annotations

import copy
import pytest

from buildrules.core.config_stack import (
    mergeWithStrategy,
    ConfigLayer,
    ConfigStack,
)


# -------- mergeWithStrategy (dict) --------

def test_merge_replace_dict():
    left = {"a": 1, "b": {"x": 1, "y": 2}}
    right = {"__merge": "replace", "b": {"z": 3}, "c": 9}
    out = mergeWithStrategy(left, right)
    # whole object replaced (minus control key)
    assert out == {"b": {"z": 3}, "c": 9}


def test_merge_deep_default():
    left = {"a": 1, "b": {"x": 1, "y": 2}}
    right = {"b": {"y": 5, "z": 9}, "c": 7}
    assert mergeWithStrategy(left, right) == {"a": 1, "b": {"x": 1, "y": 5, "z": 9}, "c": 7}


def test_merge_rejects_unknown_object_strategy():
    with pytest.raises(ValueError, match="__merge"):
        mergeWithStrategy({"a": 1}, {"__merge": "append"})


# -------- mergeWithStrategy (lists) --------

def test_list_replace_default():
    assert mergeWithStrategy({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}


def test_list_side_channel_append_and_unique():
    left = {"externalModules": ["Core", "Engine"]}

    out = mergeWithStrategy(left, {"externalModules": ["Engine", "Slate"], "externalModules__merge": "append"})
    assert out["externalModules"] == ["Core", "Engine", "Engine", "Slate"]

    out = mergeWithStrategy(left, {"externalModules": ["Engine", "Slate"], "externalModules__merge": "uniqueAppend"})
    assert out["externalModules"] == ["Core", "Engine", "Slate"]
    assert "externalModules__merge" not in out


def test_list_side_channel_requires_list_value():
    with pytest.raises(ValueError, match="only applies to list"):
        mergeWithStrategy({"items": [1]}, {"items": 2, "items__merge": "append"})


def test_list_side_channel_rejects_unknown_strategy():
    with pytest.raises(ValueError, match="Invalid __merge"):
        mergeWithStrategy({"items": [1]}, {"items": [2], "items__merge": "prepend"})


def test_merge_does_not_mutate_inputs():
    left = {"a": [1], "b": {"x": 1}}
    right = {"a": [2], "a__merge": "append", "b": {"y": 2}}
    left_copy = copy.deepcopy(left)
    right_copy = copy.deepcopy(right)
    _ = mergeWithStrategy(left, right)
    assert left == left_copy
    assert right == right_copy


# -------- ConfigStack / ConfigView --------

def test_precedence_follows_scope_not_insertion_order():
    stack = ConfigStack()
    stack.addLayer(ConfigLayer(name="cli", scope="invocation", data={"v": 3}))
    stack.addLayer(ConfigLayer(name="plugin", scope="plugin", data={"v": 2, "arr": [1]}))
    stack.addLayer(ConfigLayer(name="defaults", scope="defaults", data={"v": 1, "arr": [0]}))

    eff = stack.view().effective()
    assert eff["v"] == 3
    assert eff["arr"] == [1]


def test_unknown_scope_rejected():
    with pytest.raises(ValueError, match="Unknown config scope"):
        ConfigStack([ConfigLayer(name="x", scope="runtime", data={})])  # type: ignore[arg-type]


def test_view_cache_invalidated_on_change():
    stack = ConfigStack([ConfigLayer(name="defaults", scope="defaults", data={"k": 1})])
    view = stack.view()
    assert view.get("k") == 1

    stack.addLayer(ConfigLayer(name="plugin", scope="plugin", data={"k": 2}))
    assert view.get("k") == 2

    stack.setOverrides({"k": 3}, name="cli")
    assert view.get("k") == 3


def test_set_overrides_uses_dotted_paths_and_skips_none():
    stack = ConfigStack([ConfigLayer(name="defaults", scope="defaults", data={"resolution": {"mode": "collect", "maxWorkers": 1}})])
    stack.setOverrides({"resolution.maxWorkers": 4, "resolution.mode": None}, name="cli")

    view = stack.view()
    assert view.get("resolution.maxWorkers") == 4
    assert view.get("resolution.mode") == "collect"
    assert view.get("resolution.missing", "fallback") == "fallback"
    assert [layer.name for layer in stack.layers()] == ["defaults", "cli"]


def test_set_overrides_with_only_none_adds_no_layer():
    stack = ConfigStack()
    stack.setOverrides({"a.b": None})
    assert stack.layers() == []
