# buildrules/descriptors/descriptor.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from buildrules.core.errors import DuplicateModule
from buildrules.version.engine_version import (
    EngineVersion,
    VersionCondition,
    parseEngineVersion,
    versionSatisfiesCondition,
)

logger = logging.getLogger(__name__)

__all__ = [
    "TargetType",
    "Visibility",
    "ModuleRef",
    "IncludePathRef",
    "ModuleDescriptor",
    "TargetContext",
    "DescriptorRegistry",
]



class TargetType(Enum):
    EDITOR = "Editor"
    GAME = "Game"
    SERVER = "Server"
    PROGRAM = "Program"
    CLIENT = "Client"

    @classmethod
    def parse(cls, raw: TargetType | str) -> TargetType:
        if isinstance(raw, TargetType):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown target type {raw!r}; expected one of: {allowed}")



class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    DYNAMIC = "dynamic"

    @property
    def isStatic(self) -> bool:
        # Dynamic dependencies are loaded at runtime and never linked.
        return self is not Visibility.DYNAMIC



@dataclass(frozen=True, slots=True)
class ModuleRef:
    # Name of the module depended upon
    targetName: str
    # Engine version predicate; None means unconditional
    versionCondition: VersionCondition | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.targetName, str) or not self.targetName.strip():
            raise ValueError("ModuleRef.targetName must be a non-empty string")

    def appliesTo(self, version: EngineVersion) -> bool:
        return versionSatisfiesCondition(version, self.versionCondition)

    def __str__(self) -> str:
        if self.versionCondition is None:
            return self.targetName
        return f"{self.targetName} [{self.versionCondition}]"



@dataclass(frozen=True, slots=True)
class IncludePathRef:
    path: str
    versionCondition: VersionCondition | None = None

    def appliesTo(self, version: EngineVersion) -> bool:
        return versionSatisfiesCondition(version, self.versionCondition)



def _dedupe(items: Iterable[Any]) -> tuple[Any, ...]:
    return tuple(dict.fromkeys(items))



@dataclass(frozen=True, slots=True, kw_only=True)
class ModuleDescriptor:
    """
    Canonical, immutable description of one module's declared build metadata.

    Created from configuration (descriptor files or code) and never mutated.
    Resolution only reads these descriptors, never the filesystem.
    """
    name: str
    # None means the module may be built for any target type
    targetRestriction: TargetType | None = None

    # Declared order is preserved for include paths
    includePathsPublic: tuple[IncludePathRef, ...] = ()
    includePathsPrivate: tuple[IncludePathRef, ...] = ()

    depsPublic: tuple[ModuleRef, ...] = ()
    depsPrivate: tuple[ModuleRef, ...] = ()
    depsDynamic: tuple[ModuleRef, ...] = ()

    # Informational, carried through from the descriptor document
    pchUsage: str | None = None
    sourcePath: Path | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("ModuleDescriptor.name must be a non-empty string")

        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "includePathsPublic", _dedupe(_asIncludeRefs(self.includePathsPublic)))
        object.__setattr__(self, "includePathsPrivate", _dedupe(_asIncludeRefs(self.includePathsPrivate)))
        for attr in ("depsPublic", "depsPrivate", "depsDynamic"):
            refs = _dedupe(_asModuleRefs(getattr(self, attr)))
            for ref in refs:
                if ref.targetName == self.name:
                    raise ValueError(f"Module {self.name!r} cannot depend on itself ({attr})")
            object.__setattr__(self, attr, refs)

    def dependencies(self, visibility: Visibility) -> tuple[ModuleRef, ...]:
        if visibility is Visibility.PUBLIC:
            return self.depsPublic
        if visibility is Visibility.PRIVATE:
            return self.depsPrivate
        return self.depsDynamic



def _asModuleRefs(items: Iterable[ModuleRef | str]) -> Iterator[ModuleRef]:
    for item in items:
        yield ModuleRef(item) if isinstance(item, str) else item



def _asIncludeRefs(items: Iterable[IncludePathRef | str]) -> Iterator[IncludePathRef]:
    for item in items:
        yield IncludePathRef(item) if isinstance(item, str) else item



@dataclass(frozen=True, slots=True)
class TargetContext:
    """Facts of one build invocation, supplied by the build orchestrator."""
    targetType: TargetType
    engineVersion: EngineVersion

    @classmethod
    def create(cls, targetType: TargetType | str, engineVersion: Any) -> TargetContext:
        return cls(
            targetType=TargetType.parse(targetType),
            engineVersion=parseEngineVersion(engineVersion),
        )

    def __str__(self) -> str:
        return f"{self.targetType.value}@{self.engineVersion}"



class DescriptorRegistry(Mapping[str, ModuleDescriptor]):
    """
    Explicit per-invocation index of module descriptors by name.

    Callers build one per resolution pass; there is no process-wide registry.
    """

    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()):
        self._byName: dict[str, ModuleDescriptor] = {}
        for desc in descriptors:
            self.register(desc)

    # ----- Registration -----

    def register(self, desc: ModuleDescriptor) -> None:
        existing = self._byName.get(desc.name)
        if existing is not None:
            sources = [str(src) for src in (existing.sourcePath, desc.sourcePath) if src is not None]
            raise DuplicateModule(desc.name, sources=sources)
        self._byName[desc.name] = desc
        logger.debug("Registered module descriptor '%s'", desc.name)

    # ----- Mapping protocol -----

    def __getitem__(self, name: str) -> ModuleDescriptor:
        return self._byName[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._byName)

    def __len__(self) -> int:
        return len(self._byName)

    def all(self) -> tuple[ModuleDescriptor, ...]:
        return tuple(self._byName[name] for name in sorted(self._byName))
