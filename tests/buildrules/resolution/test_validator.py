# tests/buildrules/resolution/test_validator.py
import pytest

from buildrules.core.errors import UnsupportedTargetType, ValidationError
from buildrules.descriptors.descriptor import ModuleDescriptor, TargetContext, TargetType
from buildrules.resolution.validator import ensureValid, validate


NON_EDITOR_TARGETS = [t for t in TargetType if t is not TargetType.EDITOR]


def test_editor_module_is_valid_for_editor_target(editor_context):
    desc = ModuleDescriptor(name="TetherEditor", targetRestriction=TargetType.EDITOR)
    assert validate(desc, editor_context) is None
    ensureValid(desc, editor_context)


@pytest.mark.parametrize("target", NON_EDITOR_TARGETS)
def test_editor_module_rejected_for_other_targets(target):
    desc = ModuleDescriptor(name="TetherEditor", targetRestriction=TargetType.EDITOR)
    ctx = TargetContext.create(target, "5.1")

    error = validate(desc, ctx)

    assert isinstance(error, UnsupportedTargetType)
    assert isinstance(error, ValidationError)
    assert error.moduleName == "TetherEditor"
    assert error.restriction is TargetType.EDITOR
    assert error.targetType is target
    assert error.toDict()["kind"] == "UnsupportedTargetType"
    assert error.toDict()["targetType"] == target.value


@pytest.mark.parametrize("target", list(TargetType))
def test_unrestricted_module_is_valid_everywhere(target):
    desc = ModuleDescriptor(name="Core")
    assert validate(desc, TargetContext.create(target, "4.27")) is None


def test_ensure_valid_raises():
    desc = ModuleDescriptor(name="ServerOnly", targetRestriction=TargetType.SERVER)
    with pytest.raises(UnsupportedTargetType, match="ServerOnly"):
        ensureValid(desc, TargetContext.create("Client", "5.0"))
