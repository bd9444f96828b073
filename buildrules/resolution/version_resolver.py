# buildrules/resolution/version_resolver.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from buildrules.descriptors.descriptor import (
    IncludePathRef,
    ModuleDescriptor,
    ModuleRef,
    TargetContext,
    TargetType,
    Visibility,
)
from buildrules.version.engine_version import EngineVersion

logger = logging.getLogger(__name__)

__all__ = ["ResolvedModule", "resolveDescriptor"]



@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedModule:
    """
    A ModuleDescriptor with every version condition evaluated for one
    TargetContext. Lives for a single resolution pass.
    """
    name: str
    targetRestriction: TargetType | None
    includePathsPublic: tuple[str, ...]
    includePathsPrivate: tuple[str, ...]
    depsPublic: frozenset[str]
    depsPrivate: frozenset[str]
    depsDynamic: frozenset[str]

    def dependencies(self, visibility: Visibility) -> frozenset[str]:
        if visibility is Visibility.PUBLIC:
            return self.depsPublic
        if visibility is Visibility.PRIVATE:
            return self.depsPrivate
        return self.depsDynamic

    def staticDependencies(self) -> frozenset[str]:
        return self.depsPublic | self.depsPrivate

    def toDict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "targetRestriction": self.targetRestriction.value if self.targetRestriction else None,
            "includePaths": {
                "public": list(self.includePathsPublic),
                "private": list(self.includePathsPrivate),
            },
            "dependencies": {
                "public": sorted(self.depsPublic),
                "private": sorted(self.depsPrivate),
                "dynamic": sorted(self.depsDynamic),
            },
        }



def _keepRefs(refs: Iterable[ModuleRef], version: EngineVersion) -> frozenset[str]:
    return frozenset(ref.targetName for ref in refs if ref.appliesTo(version))



def _keepPaths(refs: Iterable[IncludePathRef], version: EngineVersion) -> tuple[str, ...]:
    # Declared order is kept; duplicates after gating collapse to the first
    return tuple(dict.fromkeys(ref.path for ref in refs if ref.appliesTo(version)))



def resolveDescriptor(descriptor: ModuleDescriptor, context: TargetContext) -> ResolvedModule:
    """
    Expand version-gated entries of one descriptor into plain sets.

    An entry is kept iff it has no condition or its condition holds for
    context.engineVersion. Conflicts across visibility classes are left for
    the assembler, which sees every module at once.
    """
    version = context.engineVersion
    resolved = ResolvedModule(
        name=descriptor.name,
        targetRestriction=descriptor.targetRestriction,
        includePathsPublic=_keepPaths(descriptor.includePathsPublic, version),
        includePathsPrivate=_keepPaths(descriptor.includePathsPrivate, version),
        depsPublic=_keepRefs(descriptor.depsPublic, version),
        depsPrivate=_keepRefs(descriptor.depsPrivate, version),
        depsDynamic=_keepRefs(descriptor.depsDynamic, version),
    )

    declared = len(descriptor.depsPublic) + len(descriptor.depsPrivate) + len(descriptor.depsDynamic)
    kept = len(resolved.depsPublic) + len(resolved.depsPrivate) + len(resolved.depsDynamic)
    logger.debug(
        "Resolved module '%s' for engine %s: %d of %d dependency entries kept",
        descriptor.name,
        version,
        kept,
        declared,
    )
    return resolved
