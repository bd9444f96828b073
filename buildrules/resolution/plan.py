# buildrules/resolution/plan.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from buildrules.config.settings import ResolutionMode, ResolutionSettings
from buildrules.core.errors import BuildPlanError, BuildRulesError
from buildrules.core.logging import getLogContext, resetLogContext, setLogContext
from buildrules.descriptors.descriptor import DescriptorRegistry, ModuleDescriptor, TargetContext
from buildrules.resolution.assembler import DependencyGraph, GraphAssembler
from buildrules.resolution.validator import validate
from buildrules.resolution.version_resolver import ResolvedModule, resolveDescriptor

logger = logging.getLogger(__name__)

__all__ = ["ModuleOutcome", "BuildPlan", "resolveModule", "planBuild"]



@dataclass(frozen=True, slots=True)
class ModuleOutcome:
    """Result of validating and resolving one descriptor: exactly one of resolved/error is set."""
    name: str
    resolved: ResolvedModule | None = None
    error: BuildRulesError | None = None



@dataclass(frozen=True)
class BuildPlan:
    """
    What the build orchestrator receives: either a graph with its build order,
    or every blocking error found, each tagged with the offending module.
    """
    context: TargetContext
    graph: DependencyGraph | None = None
    errors: tuple[BuildRulesError, ...] = ()
    resolved: Mapping[str, ResolvedModule] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.graph is not None and not self.errors

    @property
    def buildOrder(self) -> tuple[str, ...]:
        return self.graph.buildOrder if self.graph is not None else ()

    def raiseForErrors(self) -> None:
        if self.errors:
            raise BuildPlanError(self.errors)

    def toDict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "context": {
                "targetType": self.context.targetType.value,
                "engineVersion": str(self.context.engineVersion),
            },
            "buildOrder": list(self.buildOrder),
            "graph": self.graph.toDict() if self.graph is not None else None,
            "errors": [err.toDict() for err in self.errors],
        }



def resolveModule(descriptor: ModuleDescriptor, context: TargetContext) -> ModuleOutcome:
    """
    Validate then resolve one descriptor. No shared state, so many of these
    may run in parallel.
    """
    token = setLogContext(moduleName=descriptor.name)
    try:
        error = validate(descriptor, context)
        if error is not None:
            return ModuleOutcome(descriptor.name, error=error)
        return ModuleOutcome(descriptor.name, resolved=resolveDescriptor(descriptor, context))
    finally:
        resetLogContext(token)



def _asRegistry(
    descriptors: DescriptorRegistry | Mapping[str, ModuleDescriptor] | Iterable[ModuleDescriptor],
) -> DescriptorRegistry:
    if isinstance(descriptors, DescriptorRegistry):
        return descriptors
    if isinstance(descriptors, Mapping):
        for key, desc in descriptors.items():
            if key != desc.name:
                raise ValueError(f"Descriptor mapping key {key!r} does not match module name {desc.name!r}")
        return DescriptorRegistry(descriptors.values())
    return DescriptorRegistry(descriptors)



def _resolveAll(
    registry: DescriptorRegistry,
    context: TargetContext,
    settings: ResolutionSettings,
) -> list[ModuleOutcome]:
    descriptors = registry.all()
    if settings.maxWorkers > 1 and len(descriptors) > 1:
        # Worker threads start with an empty log context; carry the caller's over
        callerContext = dict(getLogContext() or {})

        def resolveInWorker(desc: ModuleDescriptor) -> ModuleOutcome:
            token = setLogContext(**callerContext)
            try:
                return resolveModule(desc, context)
            finally:
                resetLogContext(token)

        with ThreadPoolExecutor(max_workers=settings.maxWorkers, thread_name_prefix="buildrules") as pool:
            # map() keeps input (module-name) order regardless of completion order
            outcomes = list(pool.map(resolveInWorker, descriptors))
    else:
        outcomes = [resolveModule(desc, context) for desc in descriptors]

    if settings.mode is ResolutionMode.FAIL_FAST:
        for outcome in outcomes:
            if outcome.error is not None:
                logger.error("Aborting resolution on first module error: %s", outcome.error)
                raise outcome.error
    return outcomes



def planBuild(
    descriptors: DescriptorRegistry | Mapping[str, ModuleDescriptor] | Iterable[ModuleDescriptor],
    context: TargetContext,
    *,
    settings: ResolutionSettings | None = None,
) -> BuildPlan:
    """
    Validate, resolve and assemble every module of a plugin for one target.

    Modes:
      - COLLECT (default): per-module errors are gathered; assembly
        diagnostics still run so one call reports every problem. Modules that
        failed validation count as declared, so they do not cascade into
        UnknownModule errors for their dependents.
      - FAIL_FAST: the first per-module error (in module-name order) and the
        first assembly error are raised instead of returned.

    Raises:
        DuplicateModule when descriptors repeat a module name (always, it is an
        input error rather than a resolution result)
    """
    settings = settings or ResolutionSettings()
    registry = _asRegistry(descriptors)
    logger.info(
        "Planning build of %d module(s) for %s (mode=%s)",
        len(registry),
        context,
        settings.mode.value,
    )

    outcomes = _resolveAll(registry, context, settings)
    moduleErrors = [outcome.error for outcome in outcomes if outcome.error is not None]
    resolved = {outcome.name: outcome.resolved for outcome in outcomes if outcome.resolved is not None}

    assembler = GraphAssembler(
        externalModules=settings.externalModules,
        visibilityConflict=settings.visibilityConflict,
        placeholderModules=[outcome.name for outcome in outcomes if outcome.error is not None],
    )
    assembler.addModules(resolved[name] for name in sorted(resolved))

    if moduleErrors:
        errors = [*moduleErrors, *assembler.diagnose()]
        logger.warning("Build plan for %s has %d blocking error(s)", context, len(errors))
        return BuildPlan(context=context, errors=tuple(errors), resolved=resolved)

    if settings.mode is ResolutionMode.FAIL_FAST:
        graph = assembler.freeze()
        return BuildPlan(context=context, graph=graph, resolved=resolved)

    assemblyErrors = assembler.diagnose()
    if assemblyErrors:
        logger.warning("Build plan for %s has %d blocking error(s)", context, len(assemblyErrors))
        return BuildPlan(context=context, errors=tuple(assemblyErrors), resolved=resolved)

    graph = assembler.freeze()
    logger.info("Build order for %s: %s", context, ", ".join(graph.buildOrder))
    return BuildPlan(context=context, graph=graph, resolved=resolved)
