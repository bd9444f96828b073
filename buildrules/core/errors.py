# buildrules/core/errors.py
from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from buildrules.descriptors.descriptor import TargetType

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
]



class BuildRulesError(Exception):
    """
    Base class for every configuration error reported by buildrules.

    All of them are contract violations in the descriptors or settings,
    never transient failures, so nothing here is ever retried.
    """

    def __init__(self, message: str, *, moduleName: str | None = None) -> None:
        super().__init__(message)
        self.moduleName: str | None = moduleName

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self)

    def details(self) -> dict[str, Any]:
        return {}

    def toDict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "module": self.moduleName,
            "message": self.message,
            **self.details(),
        }



class ConfigError(BuildRulesError):
    """Raised when a settings document or override is invalid."""



# ------------------------------------------------------------------ #
# Descriptor input errors
# ------------------------------------------------------------------ #

class DescriptorError(BuildRulesError):
    """Base class for malformed descriptor input."""



class DescriptorFormatError(DescriptorError):
    """Raised when a descriptor document cannot be read or does not match the format."""

    def __init__(self, message: str, *, path: Path | None = None, moduleName: str | None = None) -> None:
        super().__init__(message, moduleName=moduleName)
        self.path: Path | None = path

    def details(self) -> dict[str, Any]:
        return {"path": str(self.path) if self.path is not None else None}



class DuplicateModule(DescriptorError):
    """Raised when two descriptors declare the same module name."""

    def __init__(self, moduleName: str, *, sources: Sequence[str] = ()) -> None:
        where = f" (declared in {', '.join(sources)})" if sources else ""
        super().__init__(f"Module {moduleName!r} is declared more than once{where}", moduleName=moduleName)
        self.sources: tuple[str, ...] = tuple(sources)

    def details(self) -> dict[str, Any]:
        return {"sources": list(self.sources)}



# ------------------------------------------------------------------ #
# Validation errors
# ------------------------------------------------------------------ #

class ValidationError(BuildRulesError):
    """Base class for per-module validation failures."""



class UnsupportedTargetType(ValidationError):
    """The module is restricted to one target type and the build targets another."""

    def __init__(self, moduleName: str, *, restriction: TargetType, targetType: TargetType) -> None:
        super().__init__(
            f"Unable to instantiate module {moduleName!r} for {targetType.value} targets: "
            f"module is restricted to {restriction.value} targets",
            moduleName=moduleName,
        )
        self.restriction: TargetType = restriction
        self.targetType: TargetType = targetType

    def details(self) -> dict[str, Any]:
        return {"restriction": self.restriction.value, "targetType": self.targetType.value}



# ------------------------------------------------------------------ #
# Assembly errors
# ------------------------------------------------------------------ #

class AssemblyError(BuildRulesError):
    """Base class for errors in the merged whole-plugin graph."""



class ConflictingDependencyVisibility(AssemblyError):
    """A module lists the same dependency under more than one visibility class."""

    def __init__(self, moduleName: str, *, target: str, visibilities: Iterable[str]) -> None:
        self.target: str = target
        self.visibilities: tuple[str, ...] = tuple(visibilities)
        super().__init__(
            f"Module {moduleName!r} lists dependency {target!r} as "
            f"{' and '.join(self.visibilities)}; a dependency must have exactly one visibility",
            moduleName=moduleName,
        )

    def details(self) -> dict[str, Any]:
        return {"target": self.target, "visibilities": list(self.visibilities)}



class CyclicDependency(AssemblyError):
    """Public/private edges form a cycle. `cycle` is closed: first == last."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: tuple[str, ...] = tuple(cycle)
        super().__init__(
            f"Cyclic module dependency: {' -> '.join(self.cycle)}",
            moduleName=self.cycle[0] if self.cycle else None,
        )

    @property
    def modules(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(self.cycle))

    def details(self) -> dict[str, Any]:
        return {"cycle": list(self.cycle)}



class UnknownModule(AssemblyError):
    """A dependency names a module that is neither declared nor external."""

    def __init__(self, missing: str, *, referencedBy: str, visibility: str | None = None) -> None:
        self.missing: str = missing
        self.referencedBy: str = referencedBy
        self.visibility: str | None = visibility
        via = f" {visibility}" if visibility else ""
        super().__init__(
            f"Module {referencedBy!r} references unknown{via} dependency {missing!r}",
            moduleName=referencedBy,
        )

    def details(self) -> dict[str, Any]:
        return {"missing": self.missing, "referencedBy": self.referencedBy, "visibility": self.visibility}



# ------------------------------------------------------------------ #
# Aggregate
# ------------------------------------------------------------------ #

class BuildPlanError(BuildRulesError):
    """Raised by BuildPlan.raiseForErrors() with every blocking error of the plan."""

    def __init__(self, errors: Sequence[BuildRulesError]) -> None:
        self.errors: tuple[BuildRulesError, ...] = tuple(errors)
        lines = [f"{len(self.errors)} blocking error(s) in build plan:"]
        lines.extend(f"  - [{err.kind}] {err}" for err in self.errors)
        super().__init__("\n".join(lines))

    def details(self) -> dict[str, Any]:
        return {"errors": [err.toDict() for err in self.errors]}
