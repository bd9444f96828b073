# buildrules/descriptors/loader.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5
from pydantic import ValidationError as PydanticValidationError

from buildrules.core.errors import DescriptorFormatError
from buildrules.descriptors.descriptor import DescriptorRegistry, ModuleDescriptor
from buildrules.descriptors.manifest import ModuleManifest

logger = logging.getLogger(__name__)

__all__ = [
    "DESCRIPTOR_SUFFIXES",
    "readJsonDocument",
    "parseDescriptorDocument",
    "loadDescriptorFile",
    "discoverDescriptors",
    "buildDescriptorRegistry",
]



DESCRIPTOR_SUFFIXES: tuple[str, ...] = (".module.json5", ".module.json")



# ------------------------------------------------------------------ #
# Document reading / normalization
# ------------------------------------------------------------------ #

def readJsonDocument(path: Path) -> Mapping[str, Any]:
    """Read a JSON or JSON5 file that must contain an object at the top level."""
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json5":
        rawJson = json5.loads(text)
    elif path.suffix == ".json":
        rawJson = json.loads(text)
    else:
        raise ValueError(f"Unknown document file extension '{path.suffix}'")
    if rawJson is None or not isinstance(rawJson, dict):
        raise ValueError(f"Document '{path}' is not a JSON object")
    return rawJson



def _formatPydanticError(err: PydanticValidationError) -> str:
    parts: list[str] = []
    for item in err.errors():
        loc = ".".join(str(piece) for piece in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg')}")
    return "; ".join(parts)



def parseDescriptorDocument(rawJson: Mapping[str, Any], *, sourcePath: Path | None = None) -> ModuleDescriptor:
    """Validate one descriptor document and turn it into a ModuleDescriptor."""
    nameHint = rawJson.get("name") if isinstance(rawJson.get("name"), str) else None
    try:
        manifest = ModuleManifest.model_validate(rawJson)
        return manifest.toDescriptor(sourcePath=sourcePath)
    except PydanticValidationError as err:
        where = f" in '{sourcePath}'" if sourcePath is not None else ""
        raise DescriptorFormatError(
            f"Invalid module descriptor{where}: {_formatPydanticError(err)}",
            path=sourcePath,
            moduleName=nameHint,
        ) from err
    except ValueError as err:
        # ModuleDescriptor invariants (self-dependency, empty names)
        raise DescriptorFormatError(str(err), path=sourcePath, moduleName=nameHint) from err



def loadDescriptorFile(path: Path) -> ModuleDescriptor:
    try:
        rawJson = readJsonDocument(path)
    except (OSError, ValueError) as err:
        raise DescriptorFormatError(f"Failed to read module descriptor '{path}': {err}", path=path) from err
    desc = parseDescriptorDocument(rawJson, sourcePath=path)
    logger.debug("Loaded module descriptor '%s' from '%s'", desc.name, path)
    return desc



# ------------------------------------------------------------------ #
# Discovery from a plugin root
# ------------------------------------------------------------------ #

def _isDescriptorFile(path: Path) -> bool:
    return path.is_file() and path.name.endswith(DESCRIPTOR_SUFFIXES)



def _walkForDescriptors(
    dirPath: Path,
    *,
    followSymlinks: bool,
    pathStack: tuple[Path, ...],
    out: list[Path],
) -> None:
    if dirPath.is_symlink() and not followSymlinks:
        logger.debug("Skipping symlinked directory '%s'", dirPath)
        return

    resolved = dirPath.resolve(strict=False)
    # Symlink / directory loop detection.
    if resolved in pathStack:
        logger.warning("Detected symlink loop while scanning descriptors: '%s'", resolved)
        return
    nextStack = pathStack + (resolved,)

    for child in sorted(dirPath.iterdir()):
        if child.name.startswith("."):
            continue
        if child.is_dir():
            _walkForDescriptors(child, followSymlinks=followSymlinks, pathStack=nextStack, out=out)
        elif _isDescriptorFile(child):
            out.append(child)



def discoverDescriptors(root: Path, *, followSymlinks: bool = False) -> list[Path]:
    """
    Find every descriptor file below root.

    Rules:
      - Files named <Name>.module.json5 or <Name>.module.json are descriptors.
      - Hidden files and directories are skipped.
      - Symlinked directories are skipped unless followSymlinks is set;
        symlink loops are detected and skipped either way.
      - The result is sorted, so discovery is deterministic.
    """
    root = Path(root)
    if root.is_file():
        return [root] if _isDescriptorFile(root) else []
    if not root.is_dir():
        raise DescriptorFormatError(f"Descriptor root '{root}' does not exist", path=root)

    found: list[Path] = []
    _walkForDescriptors(root, followSymlinks=followSymlinks, pathStack=(), out=found)
    return sorted(found)



def buildDescriptorRegistry(root: Path, *, followSymlinks: bool = False) -> DescriptorRegistry:
    """
    Discover and load every descriptor below root into a DescriptorRegistry.

    Raises:
        DescriptorFormatError for unreadable or invalid documents
        DuplicateModule when two documents declare the same module name
    """
    registry = DescriptorRegistry()
    paths = discoverDescriptors(root, followSymlinks=followSymlinks)
    for path in paths:
        registry.register(loadDescriptorFile(path))
    logger.info("Loaded %d module descriptor(s) from '%s'", len(registry), root)
    return registry
