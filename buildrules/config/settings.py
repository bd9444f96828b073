# buildrules/config/settings.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, cast

import fastjsonschema

from buildrules.core.config_stack import ConfigLayer, ConfigStack, ConfigView
from buildrules.core.errors import ConfigError
from buildrules.descriptors.loader import readJsonDocument
from buildrules.resolution.assembler import VISIBILITY_CONFLICT_POLICIES, VisibilityConflictPolicy

logger = logging.getLogger(__name__)

__all__ = [
    "SETTINGS_FILE_NAMES",
    "DEFAULT_SETTINGS",
    "SETTINGS_SCHEMA",
    "ResolutionMode",
    "ResolutionSettings",
    "validateSettingsDocument",
    "loadSettingsLayer",
    "buildConfigStack",
    "loadResolutionSettings",
]



SETTINGS_FILE_NAMES: tuple[str, ...] = ("buildrules.json5", "buildrules.json")



class ResolutionMode(Enum):
    # Report every per-module error of the plugin at once
    COLLECT = "collect"
    # Abort on the first per-module error
    FAIL_FAST = "failFast"

    @classmethod
    def parse(cls, raw: ResolutionMode | str) -> ResolutionMode:
        if isinstance(raw, ResolutionMode):
            return raw
        text = str(raw or "").strip().replace("-", "").replace("_", "").lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown resolution mode {raw!r}; expected 'collect' or 'failFast'")



DEFAULT_SETTINGS: dict[str, Any] = {
    "resolution": {
        "mode": ResolutionMode.COLLECT.value,
        "maxWorkers": 1,
        "externalModules": [],
    },
    "dependencies": {
        "visibilityConflict": "error",
    },
    "discovery": {
        "followSymlinks": False,
    },
    "logging": {
        "devMode": True,
        "file": None,
    },
}



SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "resolution": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "mode": {"type": "string", "enum": ["collect", "failFast"]},
                "maxWorkers": {"type": "integer", "minimum": 1},
                "externalModules": {"type": "array", "items": {"type": "string", "minLength": 1}},
                "externalModules__merge": {"type": "string", "enum": ["replace", "append", "uniqueAppend"]},
            },
        },
        "dependencies": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "visibilityConflict": {"type": "string", "enum": list(VISIBILITY_CONFLICT_POLICIES)},
            },
        },
        "discovery": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "followSymlinks": {"type": "boolean"},
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "devMode": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
            },
        },
    },
}

_validateSettings = cast(Callable[[Any], Any], fastjsonschema.compile(SETTINGS_SCHEMA))



def validateSettingsDocument(data: Any, *, source: str = "<settings>") -> None:
    try:
        _validateSettings(data)
    except fastjsonschema.JsonSchemaException as err:
        raise ConfigError(f"Invalid settings in {source}: {err}") from err



def loadSettingsLayer(root: Path) -> ConfigLayer | None:
    """
    Read the plugin settings file from root (buildrules.json5 or buildrules.json).

    Returns None when the plugin has no settings file.
    """
    root = Path(root)
    if root.is_file():
        root = root.parent
    for name in SETTINGS_FILE_NAMES:
        candidate = root / name
        if not candidate.is_file():
            continue
        try:
            data = readJsonDocument(candidate)
        except (OSError, ValueError) as err:
            raise ConfigError(f"Failed to read settings file '{candidate}': {err}") from err
        validateSettingsDocument(data, source=str(candidate))
        logger.debug("Loaded plugin settings from '%s'", candidate)
        return ConfigLayer(name=str(candidate), scope="plugin", data=dict(data))
    return None



def buildConfigStack(
    root: Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> ConfigStack:
    """defaults -> plugin settings file (if any) -> invocation overrides."""
    stack = ConfigStack([ConfigLayer(name="defaults", scope="defaults", data=DEFAULT_SETTINGS)])
    if root is not None:
        layer = loadSettingsLayer(root)
        if layer is not None:
            stack.addLayer(layer)
    if overrides:
        stack.setOverrides(overrides, name="invocation")
    return stack



@dataclass(frozen=True, slots=True)
class ResolutionSettings:
    mode: ResolutionMode = ResolutionMode.COLLECT
    maxWorkers: int = 1
    externalModules: frozenset[str] = frozenset()
    visibilityConflict: VisibilityConflictPolicy = "error"
    followSymlinks: bool = False



def loadResolutionSettings(view: ConfigView) -> ResolutionSettings:
    """Turn the effective config into ResolutionSettings, checking every value."""
    effective = view.effective()
    validateSettingsDocument(effective, source="effective configuration")

    try:
        mode = ResolutionMode.parse(view.get("resolution.mode", ResolutionMode.COLLECT.value))
    except ValueError as err:
        raise ConfigError(str(err)) from err

    return ResolutionSettings(
        mode=mode,
        maxWorkers=int(view.get("resolution.maxWorkers", 1)),
        externalModules=frozenset(view.get("resolution.externalModules", [])),
        visibilityConflict=cast(VisibilityConflictPolicy, view.get("dependencies.visibilityConflict", "error")),
        followSymlinks=bool(view.get("discovery.followSymlinks", False)),
    )
