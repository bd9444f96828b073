# buildrules/__init__.py
from .core.errors import (
    BuildRulesError,
    ConfigError,
    DescriptorError,
    DescriptorFormatError,
    DuplicateModule,
    ValidationError,
    UnsupportedTargetType,
    AssemblyError,
    ConflictingDependencyVisibility,
    CyclicDependency,
    UnknownModule,
    BuildPlanError,
)
from .descriptors.descriptor import (
    TargetType,
    Visibility,
    ModuleRef,
    IncludePathRef,
    ModuleDescriptor,
    TargetContext,
    DescriptorRegistry,
)
from .version.engine_version import EngineVersion, VersionCondition, minVersionCondition, parseVersionCondition
from .resolution.validator import validate, ensureValid
from .resolution.version_resolver import ResolvedModule, resolveDescriptor
from .resolution.assembler import DependencyGraph, GraphAssembler, assemble
from .resolution.plan import BuildPlan, planBuild
from .config.settings import ResolutionMode, ResolutionSettings

__all__ = [
    "BuildRulesError",
    "ConfigError",
    "DescriptorError",
    "DescriptorFormatError",
    "DuplicateModule",
    "ValidationError",
    "UnsupportedTargetType",
    "AssemblyError",
    "ConflictingDependencyVisibility",
    "CyclicDependency",
    "UnknownModule",
    "BuildPlanError",
    "TargetType",
    "Visibility",
    "ModuleRef",
    "IncludePathRef",
    "ModuleDescriptor",
    "TargetContext",
    "DescriptorRegistry",
    "EngineVersion",
    "VersionCondition",
    "minVersionCondition",
    "parseVersionCondition",
    "validate",
    "ensureValid",
    "ResolvedModule",
    "resolveDescriptor",
    "DependencyGraph",
    "GraphAssembler",
    "assemble",
    "BuildPlan",
    "planBuild",
    "ResolutionMode",
    "ResolutionSettings",
]
