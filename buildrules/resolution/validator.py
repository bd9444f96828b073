# buildrules/resolution/validator.py
from __future__ import annotations

import logging

from buildrules.core.errors import UnsupportedTargetType
from buildrules.descriptors.descriptor import ModuleDescriptor, TargetContext

logger = logging.getLogger(__name__)

__all__ = ["validate", "ensureValid"]



def validate(descriptor: ModuleDescriptor, context: TargetContext) -> UnsupportedTargetType | None:
    """
    Check the descriptor's target-type restriction against the build context.

    Returns None when the module may be built for context.targetType, or an
    UnsupportedTargetType error value otherwise. Never raises for a mismatch,
    so callers decide between fail-fast and aggregate-and-report.
    """
    restriction = descriptor.targetRestriction
    if restriction is None or restriction is context.targetType:
        return None

    logger.debug(
        "Module '%s' is restricted to %s targets, build targets %s",
        descriptor.name,
        restriction.value,
        context.targetType.value,
    )
    return UnsupportedTargetType(
        descriptor.name,
        restriction=restriction,
        targetType=context.targetType,
    )



def ensureValid(descriptor: ModuleDescriptor, context: TargetContext) -> None:
    """Raising variant of validate()."""
    error = validate(descriptor, context)
    if error is not None:
        raise error
