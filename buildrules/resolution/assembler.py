# buildrules/resolution/assembler.py
from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from buildrules.core.errors import (
    BuildRulesError,
    ConflictingDependencyVisibility,
    CyclicDependency,
    DuplicateModule,
    UnknownModule,
)
from buildrules.descriptors.descriptor import Visibility
from buildrules.resolution.version_resolver import ResolvedModule

logger = logging.getLogger(__name__)

__all__ = [
    "VisibilityConflictPolicy",
    "VISIBILITY_CONFLICT_POLICIES",
    "STATIC_VISIBILITIES",
    "ModuleNode",
    "DependencyGraph",
    "GraphAssembler",
    "assemble",
]



VisibilityConflictPolicy = Literal["error", "preferPublic"]
VISIBILITY_CONFLICT_POLICIES: tuple[str, ...] = ("error", "preferPublic")

# Dynamic edges are resolved at runtime and never take part in cycle checks or ordering.
STATIC_VISIBILITIES: tuple[Visibility, ...] = tuple(vis for vis in Visibility if vis.isStatic)
_ALL_VISIBILITIES: tuple[Visibility, ...] = (Visibility.PUBLIC, Visibility.PRIVATE, Visibility.DYNAMIC)



@dataclass(frozen=True, slots=True)
class ModuleNode:
    name: str
    # None for external (host engine) modules
    module: ResolvedModule | None = None

    @property
    def isExternal(self) -> bool:
        return self.module is None



class DependencyGraph:
    """
    Frozen whole-plugin module graph with its topological build order.

    Built by GraphAssembler.freeze(); read-only afterwards.
    """

    def __init__(
        self,
        *,
        nodes: Mapping[str, ModuleNode],
        edges: Mapping[str, Mapping[Visibility, frozenset[str]]],
        buildOrder: tuple[str, ...],
    ) -> None:
        self._nodes: dict[str, ModuleNode] = dict(nodes)
        self._edges: dict[str, dict[Visibility, frozenset[str]]] = {
            name: dict(byVis) for name, byVis in edges.items()
        }
        self._buildOrder = buildOrder

    # ----- Basic access -----

    @property
    def buildOrder(self) -> tuple[str, ...]:
        """Modules to build, each after all its public/private dependencies."""
        return self._buildOrder

    @property
    def nodes(self) -> Mapping[str, ModuleNode]:
        return dict(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, name: str) -> ModuleNode:
        try:
            return self._nodes[name]
        except KeyError:
            raise KeyError(f"Module '{name}' is not part of the dependency graph") from None

    def module(self, name: str) -> ResolvedModule:
        node = self.node(name)
        if node.module is None:
            raise KeyError(f"Module '{name}' is external and has no resolved descriptor")
        return node.module

    def externalModules(self) -> tuple[str, ...]:
        return tuple(sorted(name for name, node in self._nodes.items() if node.isExternal))

    # ----- Edge queries -----

    def dependenciesOf(
        self,
        name: str,
        kinds: Iterable[Visibility] = _ALL_VISIBILITIES,
    ) -> frozenset[str]:
        self.node(name)
        byVis = self._edges.get(name, {})
        out: set[str] = set()
        for vis in kinds:
            out |= byVis.get(vis, frozenset())
        return frozenset(out)

    def dependentsOf(
        self,
        name: str,
        kinds: Iterable[Visibility] = _ALL_VISIBILITIES,
    ) -> frozenset[str]:
        self.node(name)
        wanted = tuple(kinds)
        return frozenset(
            source
            for source, byVis in self._edges.items()
            if any(name in byVis.get(vis, frozenset()) for vis in wanted)
        )

    def publicClosure(self, name: str) -> tuple[str, ...]:
        """name plus every module re-exported through chains of public dependencies."""
        seen: dict[str, None] = {}
        stack = [name]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen[current] = None
            stack.extend(sorted(self._edges.get(current, {}).get(Visibility.PUBLIC, frozenset()), reverse=True))
        return tuple(seen)

    def includePathsFor(self, name: str) -> tuple[str, ...]:
        """
        Include paths a module compiles with: its own public and private
        paths, then the public paths of every static dependency and of
        whatever those re-export publicly. First occurrence wins.
        """
        own = self.module(name)
        paths: dict[str, None] = dict.fromkeys(own.includePathsPublic)
        paths.update(dict.fromkeys(own.includePathsPrivate))
        for dep in sorted(self.dependenciesOf(name, STATIC_VISIBILITIES)):
            for visible in self.publicClosure(dep):
                node = self._nodes.get(visible)
                if node is None or node.module is None:
                    continue
                paths.update(dict.fromkeys(node.module.includePathsPublic))
        return tuple(paths)

    def toDict(self) -> dict[str, Any]:
        modules: dict[str, Any] = {}
        for name in sorted(self._nodes):
            node = self._nodes[name]
            byVis = self._edges.get(name, {})
            modules[name] = {
                "external": node.isExternal,
                "dependencies": {vis.value: sorted(byVis.get(vis, frozenset())) for vis in _ALL_VISIBILITIES},
            }
        return {"buildOrder": list(self._buildOrder), "modules": modules}



class GraphAssembler:
    """
    Incrementally merges ResolvedModules into one graph.

    Single-threaded per resolution pass. Problems found while adding
    (duplicates, visibility conflicts) are recorded and reported together
    with unknown references and cycles by diagnose(); freeze() raises the
    first of them or returns the finished DependencyGraph.
    """

    def __init__(
        self,
        *,
        externalModules: Iterable[str] = (),
        visibilityConflict: VisibilityConflictPolicy = "error",
        placeholderModules: Iterable[str] = (),
    ) -> None:
        if visibilityConflict not in VISIBILITY_CONFLICT_POLICIES:
            raise ValueError(
                f"Invalid visibilityConflict {visibilityConflict!r}; "
                f"allowed: {', '.join(VISIBILITY_CONFLICT_POLICIES)}"
            )
        self._externals: frozenset[str] = frozenset(externalModules)
        # Names that count as declared without being assembled (modules that failed earlier)
        self._placeholders: frozenset[str] = frozenset(placeholderModules)
        self._policy: VisibilityConflictPolicy = visibilityConflict
        self._modules: dict[str, ResolvedModule] = {}
        self._edges: dict[str, dict[Visibility, frozenset[str]]] = {}
        self._problems: list[BuildRulesError] = []
        self._graph: DependencyGraph | None = None

    # ----- Building -----

    def addModule(self, module: ResolvedModule) -> None:
        if self._graph is not None:
            raise RuntimeError("GraphAssembler is frozen; create a new one for another pass")
        if module.name in self._modules:
            self._problems.append(DuplicateModule(module.name))
            return

        self._modules[module.name] = module
        self._edges[module.name] = self._classifyEdges(module)

    def addModules(self, modules: Iterable[ResolvedModule]) -> None:
        for module in modules:
            self.addModule(module)

    def _classifyEdges(self, module: ResolvedModule) -> dict[Visibility, frozenset[str]]:
        byVis: dict[Visibility, set[str]] = {vis: set(module.dependencies(vis)) for vis in _ALL_VISIBILITIES}

        seenIn: dict[str, list[Visibility]] = {}
        for vis in _ALL_VISIBILITIES:
            for target in byVis[vis]:
                seenIn.setdefault(target, []).append(vis)

        for target in sorted(seenIn):
            classes = seenIn[target]
            if len(classes) < 2:
                continue
            if self._policy == "preferPublic" and set(classes) == {Visibility.PUBLIC, Visibility.PRIVATE}:
                byVis[Visibility.PRIVATE].discard(target)
                logger.warning(
                    "Module '%s' lists '%s' as both public and private dependency; keeping public",
                    module.name,
                    target,
                )
                continue
            self._problems.append(
                ConflictingDependencyVisibility(
                    module.name,
                    target=target,
                    visibilities=[vis.value for vis in classes],
                )
            )

        return {vis: frozenset(targets) for vis, targets in byVis.items()}

    # ----- Diagnostics -----

    def _isKnown(self, name: str) -> bool:
        return name in self._modules or name in self._externals or name in self._placeholders

    def _unknownReferences(self) -> list[UnknownModule]:
        unknown: list[UnknownModule] = []
        for name in sorted(self._modules):
            byVis = self._edges[name]
            for vis in _ALL_VISIBILITIES:
                for target in sorted(byVis[vis]):
                    if not self._isKnown(target):
                        unknown.append(UnknownModule(target, referencedBy=name, visibility=vis.value))
        return unknown

    def _staticNeighbors(self, name: str) -> list[str]:
        byVis = self._edges.get(name)
        if byVis is None:
            return []
        targets = byVis[Visibility.PUBLIC] | byVis[Visibility.PRIVATE]
        return sorted(target for target in targets if target in self._modules)

    def _findCycles(self) -> list[CyclicDependency]:
        """Depth-first search over public+private edges; one report per distinct cycle found."""
        WHITE, GREY, BLACK = 0, 1, 2
        color: dict[str, int] = dict.fromkeys(self._modules, WHITE)
        path: list[str] = []
        found: dict[tuple[str, ...], None] = {}

        def visit(start: str) -> None:
            # Explicit stack of (module, remaining neighbors); dependency chains may be deep
            color[start] = GREY
            path.append(start)
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(self._staticNeighbors(start)))]
            while stack:
                name, neighbors = stack[-1]
                target = next(neighbors, None)
                if target is None:
                    stack.pop()
                    path.pop()
                    color[name] = BLACK
                    continue
                if color[target] == GREY:
                    found[_normalizeCycle(path[path.index(target):])] = None
                elif color[target] == WHITE:
                    color[target] = GREY
                    path.append(target)
                    stack.append((target, iter(self._staticNeighbors(target))))

        for name in sorted(self._modules):
            if color[name] == WHITE:
                visit(name)

        return [CyclicDependency(cycle) for cycle in found]

    def diagnose(self) -> list[BuildRulesError]:
        """Every problem of the current graph, in a deterministic order."""
        problems: list[BuildRulesError] = list(self._problems)
        problems.extend(self._unknownReferences())
        problems.extend(self._findCycles())
        return problems

    # ----- Freezing -----

    def _topologicalOrder(self) -> tuple[str, ...]:
        # Kahn's algorithm; a heap breaks ties by ascending module name.
        inDegree: dict[str, int] = dict.fromkeys(self._modules, 0)
        dependents: dict[str, list[str]] = {name: [] for name in self._modules}
        for name in self._modules:
            for target in self._staticNeighbors(name):
                inDegree[name] += 1
                dependents[target].append(name)

        ready = [name for name, degree in inDegree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            current = heapq.heappop(ready)
            order.append(current)
            for dependent in dependents[current]:
                inDegree[dependent] -= 1
                if inDegree[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) != len(self._modules):
            # diagnose() runs first, so this only trips on an internal bug
            raise AssertionError("Topological order is incomplete although no cycle was reported")
        return tuple(order)

    def freeze(self) -> DependencyGraph:
        if self._graph is not None:
            return self._graph

        problems = self.diagnose()
        if problems:
            first = problems[0]
            if len(problems) > 1:
                logger.debug("Assembly found %d problems; raising the first: %s", len(problems), first)
            raise first

        nodes: dict[str, ModuleNode] = {name: ModuleNode(name, module) for name, module in self._modules.items()}
        for byVis in self._edges.values():
            for targets in byVis.values():
                for target in targets:
                    if target not in nodes:
                        nodes[target] = ModuleNode(target)

        self._graph = DependencyGraph(nodes=nodes, edges=self._edges, buildOrder=self._topologicalOrder())
        logger.info(
            "Assembled dependency graph: %d module(s), %d external",
            len(self._modules),
            len(nodes) - len(self._modules),
        )
        return self._graph



def _normalizeCycle(cycle: list[str]) -> tuple[str, ...]:
    # Rotate so the smallest name leads, then close the loop.
    start = cycle.index(min(cycle))
    rotated = cycle[start:] + cycle[:start]
    return tuple(rotated + [rotated[0]])



def assemble(
    resolvedModules: Iterable[ResolvedModule],
    *,
    externalModules: Iterable[str] = (),
    visibilityConflict: VisibilityConflictPolicy = "error",
) -> DependencyGraph:
    """
    Merge resolved modules into a frozen DependencyGraph.

    Raises (first problem found):
        DuplicateModule
        ConflictingDependencyVisibility
        UnknownModule
        CyclicDependency
    """
    assembler = GraphAssembler(externalModules=externalModules, visibilityConflict=visibilityConflict)
    assembler.addModules(resolvedModules)
    return assembler.freeze()
