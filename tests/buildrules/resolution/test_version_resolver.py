# tests/buildrules/resolution/test_version_resolver.py
import pytest

from buildrules.descriptors.descriptor import (
    IncludePathRef,
    ModuleDescriptor,
    ModuleRef,
    TargetContext,
    TargetType,
)
from buildrules.resolution.version_resolver import resolveDescriptor
from buildrules.version.engine_version import minVersionCondition, parseVersionCondition


def _editorDescriptor() -> ModuleDescriptor:
    ue5 = minVersionCondition("5.0")
    return ModuleDescriptor(
        name="TetherEditor",
        targetRestriction=TargetType.EDITOR,
        includePathsPrivate=("Private", IncludePathRef("Private/UE5", ue5), IncludePathRef("Private", ue5)),
        depsPublic=("Core", "PropertyEditor"),
        depsPrivate=(
            "Engine",
            "Slate",
            ModuleRef("EditorFramework", ue5),
            ModuleRef("EditorSubsystem", ue5),
            ModuleRef("LevelEditor", ue5),
        ),
        depsDynamic=(ModuleRef("LegacyTool", parseVersionCondition("<5.0")),),
    )


@pytest.mark.parametrize("version", ["5.0", "5.1", "5.3", "6.0"])
def test_gated_dependencies_kept_at_or_above_bound(version):
    resolved = resolveDescriptor(_editorDescriptor(), TargetContext.create("Editor", version))
    assert resolved.depsPrivate == frozenset({"Engine", "Slate", "EditorFramework", "EditorSubsystem", "LevelEditor"})
    assert resolved.depsDynamic == frozenset()
    assert resolved.includePathsPrivate == ("Private", "Private/UE5")


@pytest.mark.parametrize("version", ["4.26", "4.27"])
def test_gated_dependencies_dropped_below_bound(version):
    resolved = resolveDescriptor(_editorDescriptor(), TargetContext.create("Editor", version))
    assert resolved.depsPrivate == frozenset({"Engine", "Slate"})
    assert resolved.depsDynamic == frozenset({"LegacyTool"})
    assert resolved.includePathsPrivate == ("Private",)


def test_unconditional_entries_always_kept():
    resolved = resolveDescriptor(_editorDescriptor(), TargetContext.create("Editor", "1.0"))
    assert resolved.depsPublic == frozenset({"Core", "PropertyEditor"})
    assert resolved.targetRestriction is TargetType.EDITOR


def test_resolution_is_deterministic_and_idempotent(editor_context):
    desc = _editorDescriptor()
    assert resolveDescriptor(desc, editor_context) == resolveDescriptor(desc, editor_context)


def test_resolver_does_not_reject_cross_visibility_duplicates(editor_context):
    desc = ModuleDescriptor(name="M", depsPublic=("PropertyPath",), depsPrivate=("PropertyPath",))
    resolved = resolveDescriptor(desc, editor_context)
    assert "PropertyPath" in resolved.depsPublic
    assert "PropertyPath" in resolved.depsPrivate


def test_to_dict_is_sorted(editor_context):
    resolved = resolveDescriptor(_editorDescriptor(), editor_context)
    data = resolved.toDict()
    assert data["dependencies"]["public"] == ["Core", "PropertyEditor"]
    assert data["targetRestriction"] == "Editor"
    assert data["includePaths"]["private"] == ["Private", "Private/UE5"]
