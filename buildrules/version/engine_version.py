# buildrules/version/engine_version.py
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Literal

__all__ = [
    "EngineVersion",
    "VersionComparator",
    "VersionCondition",
    "parseEngineVersion",
    "parseVersionCondition",
    "minVersionCondition",
    "versionSatisfiesCondition",
]



_NUMERIC_RE = re.compile(r"0|[1-9]\d*")
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|==|<|>|=)\s+")

ComparatorOp = Literal["<", "<=", ">", ">=", "=="]



@total_ordering
@dataclass(frozen=True)
class EngineVersion:
    major: int
    minor: int = 0

    def __post_init__(self) -> None:
        if self.major < 0 or self.minor < 0:
            raise ValueError(f"Engine version components must be non-negative, got {self.major}.{self.minor}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    def _cmpKey(self) -> tuple[int, int]:
        return (self.major, self.minor)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self._cmpKey() < other._cmpKey()



def _parseVersionText(raw: str) -> EngineVersion:
    text = raw.strip()
    if not text:
        raise ValueError("Engine version string cannot be empty or whitespace only")

    # Accept a single 'v' prefix (v5.1 -> 5.1)
    if text.startswith("v") and len(text) > 1 and "0" <= text[1] <= "9":
        text = text[1:]

    parts = text.split(".")
    if not 1 <= len(parts) <= 2:
        raise ValueError(f"Invalid engine version {raw!r}: expected <major>[.<minor>]")

    # Reject ".1", "5.", "5..1"
    if any(part == "" for part in parts):
        raise ValueError(f"Empty numeric component in engine version {raw!r}")

    numbers: list[int] = []
    for part in parts:
        if not _NUMERIC_RE.fullmatch(part):
            raise ValueError(f"Invalid numeric component {part!r} in engine version {raw!r}")
        numbers.append(int(part))

    if len(numbers) == 1:
        numbers.append(0)
    return EngineVersion(numbers[0], numbers[1])



def parseEngineVersion(raw: Any) -> EngineVersion:
    """
    Parse an engine version into EngineVersion.

    Accepted forms:
        EngineVersion(5, 1)     -> returned as is
        "5.1", "v5.1"           -> 5.1
        "5"                     -> 5.0
        (5, 1), [5, 1], [5]     -> 5.1 / 5.0
        {"major": 5, "minor": 1}

    Rejected:
        "", ".1", "5.", "5.1.2", "05.1", negative numbers, bools.
    """
    if raw is None:
        raise ValueError("Engine version cannot be None")
    if isinstance(raw, EngineVersion):
        return raw
    if isinstance(raw, str):
        return _parseVersionText(raw)
    if isinstance(raw, Mapping):
        major = raw.get("major")
        minor = raw.get("minor", 0)
        return _fromInts(major, minor, raw)
    if isinstance(raw, Sequence) and not isinstance(raw, (bytes, bytearray)):
        if not 1 <= len(raw) <= 2:
            raise ValueError(f"Engine version sequence must have 1 or 2 items, got {len(raw)}")
        minor = raw[1] if len(raw) == 2 else 0
        return _fromInts(raw[0], minor, raw)
    if isinstance(raw, float):
        # JSON5 reads an unquoted 5.0 as a float, which cannot tell 5.1 from 5.10
        raise TypeError(f"Engine version {raw!r} must be quoted, e.g. \"5.0\", or given as [major, minor]")
    raise TypeError(f"Unsupported engine version type {type(raw).__name__}")



def _fromInts(major: Any, minor: Any, raw: Any) -> EngineVersion:
    for value in (major, minor):
        # bool is an int subclass; "True.False" is never a version
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Engine version components must be integers, got {raw!r}")
    return EngineVersion(major, minor)



@dataclass(frozen=True)
class VersionComparator:
    operator: ComparatorOp
    version: EngineVersion

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"

    def matches(self, version: EngineVersion) -> bool:
        if self.operator == ">=":
            return version >= self.version
        if self.operator == ">":
            return version > self.version
        if self.operator == "<=":
            return version <= self.version
        if self.operator == "<":
            return version < self.version
        if self.operator == "==":
            return version == self.version
        raise ValueError(f"Unknown operator {self.operator!r}")



@dataclass(frozen=True)
class VersionCondition:
    # All comparators are AND-ed.
    comparators: tuple[VersionComparator, ...] = ()

    def __str__(self) -> str:
        return " ".join(str(comp) for comp in self.comparators) or "*"

    def __call__(self, version: EngineVersion) -> bool:
        return all(comp.matches(version) for comp in self.comparators)



def minVersionCondition(minVersion: Any) -> VersionCondition:
    """Open-ended lower bound: satisfied by minVersion and every later minor or major."""
    return VersionCondition(comparators=(VersionComparator(">=", parseEngineVersion(minVersion)),))



def _makeComparator(op: str, versionStr: str, rawCondition: str) -> VersionComparator:
    if not versionStr:
        raise ValueError(f"Missing version after operator {op!r} in condition {rawCondition!r}")
    canonOp = "==" if op == "=" else op
    if canonOp not in ("<", "<=", ">", ">=", "=="):
        raise ValueError(f"Unsupported operator {op!r} in condition {rawCondition!r}")
    return VersionComparator(canonOp, _parseVersionText(versionStr))  # type: ignore[arg-type]



def parseVersionCondition(rawCondition: str | None) -> VersionCondition | None:
    """
    Parse an engine version condition string.

    Accepted forms:

        None, "", or "*"        -> no condition (always true)

        "5.1"                   -> == 5.1
        ">=5.0"                 -> >= 5.0
        "<5.3"                  -> < 5.3
        ">=5.0 <5.3"            -> >=5.0 AND <5.3

        "5.0 - 5.2"             -> >=5.0 AND <=5.2

    Tokens are separated by whitespace when not a hyphen range; whitespace
    after an operator is ignored (">= 5.0" == ">=5.0").
    """
    if rawCondition is None:
        return None
    if not isinstance(rawCondition, str):
        raise TypeError(f"Condition must be a string or None, got {type(rawCondition).__name__}")

    rawCondition = rawCondition.strip()
    if not rawCondition or rawCondition == "*":
        return None
    # ">= 5.0" -> ">=5.0"
    rawCondition = _OPERATOR_SPACE_RE.sub(r"\1", rawCondition)

    # Hyphen range: <left> - <right>
    mtch = re.match(r"^(?P<left>[^\s<>=]+)\s*-\s*(?P<right>\S+)$", rawCondition)
    if mtch:
        left = _parseVersionText(mtch.group("left"))
        right = _parseVersionText(mtch.group("right"))
        if right < left:
            raise ValueError(f"Invalid hyphen range {rawCondition!r}: upper < lower")
        return VersionCondition(comparators=(
            VersionComparator(">=", left),
            VersionComparator("<=", right),
        ))

    comparators: list[VersionComparator] = []
    for token in rawCondition.split():
        op = None
        versionPart = ""
        for candidate in ("<=", ">=", "==", "<", ">", "="):
            if token.startswith(candidate):
                op = candidate
                versionPart = token[len(candidate):]
                break
        if op is not None:
            comparators.append(_makeComparator(op, versionPart, rawCondition))
            continue

        # Plain version -> ==version
        comparators.append(VersionComparator("==", _parseVersionText(token)))

    return VersionCondition(comparators=tuple(comparators))



def versionSatisfiesCondition(
    version: EngineVersion,
    condition: VersionCondition | None,
) -> bool:
    """condition None => always True."""
    if condition is None:
        return True
    return condition(version)
