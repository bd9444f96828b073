# buildrules/descriptors/manifest.py
from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from buildrules.descriptors.descriptor import (
    IncludePathRef,
    ModuleDescriptor,
    ModuleRef,
    TargetType,
)
from buildrules.version.engine_version import (
    VersionCondition,
    minVersionCondition,
    parseEngineVersion,
    parseVersionCondition,
)

__all__ = ["DependencyEntry", "IncludePathEntry", "IncludePathsSpec", "DependenciesSpec", "ModuleManifest"]



class _Conditional(BaseModel):
    """Shared engine version gating for dependency and include path entries."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    minEngineVersion: Any | None = None
    engineVersion: str | None = None

    @field_validator("minEngineVersion")
    @classmethod
    def _checkMinVersion(cls, value: Any) -> Any:
        if value is None:
            return value
        try:
            parseEngineVersion(value)
        except TypeError as err:
            # pydantic only reports ValueError as a validation failure
            raise ValueError(str(err)) from err
        return value

    @field_validator("engineVersion")
    @classmethod
    def _checkCondition(cls, value: str | None) -> str | None:
        if value is not None:
            parseVersionCondition(value)
        return value

    @model_validator(mode="after")
    def _oneConditionOnly(self) -> _Conditional:
        if self.minEngineVersion is not None and self.engineVersion is not None:
            raise ValueError("Use either 'minEngineVersion' or 'engineVersion', not both")
        return self

    def condition(self) -> VersionCondition | None:
        if self.minEngineVersion is not None:
            return minVersionCondition(self.minEngineVersion)
        return parseVersionCondition(self.engineVersion)



class DependencyEntry(_Conditional):
    name: str = Field(min_length=1)

    def toRef(self) -> ModuleRef:
        return ModuleRef(self.name.strip(), self.condition())



class IncludePathEntry(_Conditional):
    path: str = Field(min_length=1)

    def toRef(self) -> IncludePathRef:
        return IncludePathRef(self.path, self.condition())



def _expandShorthand(items: Any, key: str) -> Any:
    # "Core" is shorthand for {"name": "Core"}
    if not isinstance(items, list):
        return items
    return [{key: item} if isinstance(item, str) else item for item in items]



class IncludePathsSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    public: list[IncludePathEntry] = Field(default_factory=list)
    private: list[IncludePathEntry] = Field(default_factory=list)

    @field_validator("public", "private", mode="before")
    @classmethod
    def _shorthand(cls, value: Any) -> Any:
        return _expandShorthand(value, "path")



class DependenciesSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    public: list[DependencyEntry] = Field(default_factory=list)
    private: list[DependencyEntry] = Field(default_factory=list)
    dynamic: list[DependencyEntry] = Field(default_factory=list)

    @field_validator("public", "private", "dynamic", mode="before")
    @classmethod
    def _shorthand(cls, value: Any) -> Any:
        return _expandShorthand(value, "name")



class ModuleManifest(BaseModel):
    """Represents a validated module descriptor document."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    targetRestriction: str | None = None
    pchUsage: str | None = None
    includePaths: IncludePathsSpec = Field(default_factory=IncludePathsSpec)
    dependencies: DependenciesSpec = Field(default_factory=DependenciesSpec)

    @field_validator("targetRestriction")
    @classmethod
    def _checkTarget(cls, value: str | None) -> str | None:
        if value is not None:
            TargetType.parse(value)
        return value

    def toDescriptor(self, *, sourcePath: Path | None = None) -> ModuleDescriptor:
        restriction = TargetType.parse(self.targetRestriction) if self.targetRestriction else None
        return ModuleDescriptor(
            name=self.name.strip(),
            targetRestriction=restriction,
            includePathsPublic=tuple(entry.toRef() for entry in self.includePaths.public),
            includePathsPrivate=tuple(entry.toRef() for entry in self.includePaths.private),
            depsPublic=tuple(entry.toRef() for entry in self.dependencies.public),
            depsPrivate=tuple(entry.toRef() for entry in self.dependencies.private),
            depsDynamic=tuple(entry.toRef() for entry in self.dependencies.dynamic),
            pchUsage=self.pchUsage,
            sourcePath=sourcePath,
        )
