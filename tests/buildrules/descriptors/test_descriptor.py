# tests/buildrules/descriptors/test_descriptor.py
from pathlib import Path

import pytest

from buildrules.core.errors import DuplicateModule
from buildrules.descriptors.descriptor import (
    DescriptorRegistry,
    IncludePathRef,
    ModuleDescriptor,
    ModuleRef,
    TargetContext,
    TargetType,
    Visibility,
)
from buildrules.version.engine_version import EngineVersion, minVersionCondition


@pytest.mark.parametrize("raw", ["Editor", "editor", " EDITOR ", TargetType.EDITOR])
def test_target_type_parse_is_case_insensitive(raw):
    assert TargetType.parse(raw) is TargetType.EDITOR


def test_target_type_parse_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown target type"):
        TargetType.parse("Console")


def test_descriptor_normalizes_strings_and_collapses_repeats():
    desc = ModuleDescriptor(
        name="TetherEditor",
        includePathsPublic=("Public", "Public", "Classes"),
        depsPublic=("Core", ModuleRef("Core"), "PropertyEditor"),
    )
    assert desc.includePathsPublic == (IncludePathRef("Public"), IncludePathRef("Classes"))
    assert desc.depsPublic == (ModuleRef("Core"), ModuleRef("PropertyEditor"))


def test_descriptor_keeps_same_name_with_different_conditions():
    gated = ModuleRef("LevelEditor", minVersionCondition("5.0"))
    desc = ModuleDescriptor(name="Ed", depsPrivate=(ModuleRef("LevelEditor"), gated))
    assert len(desc.depsPrivate) == 2


@pytest.mark.parametrize("attr", ["depsPublic", "depsPrivate", "depsDynamic"])
def test_descriptor_rejects_self_dependency(attr):
    with pytest.raises(ValueError, match="cannot depend on itself"):
        ModuleDescriptor(name="Loop", **{attr: ("Loop",)})


def test_descriptor_rejects_empty_name():
    with pytest.raises(ValueError):
        ModuleDescriptor(name="  ")
    with pytest.raises(ValueError):
        ModuleRef("")


def test_descriptor_is_immutable():
    desc = ModuleDescriptor(name="Core")
    with pytest.raises(AttributeError):
        desc.name = "Other"  # type: ignore[misc]


def test_dependencies_by_visibility():
    desc = ModuleDescriptor(name="M", depsPublic=("A",), depsPrivate=("B",), depsDynamic=("C",))
    assert desc.dependencies(Visibility.PUBLIC) == (ModuleRef("A"),)
    assert desc.dependencies(Visibility.PRIVATE) == (ModuleRef("B"),)
    assert desc.dependencies(Visibility.DYNAMIC) == (ModuleRef("C"),)
    assert Visibility.PUBLIC.isStatic and not Visibility.DYNAMIC.isStatic


def test_module_ref_applies_to_version():
    ref = ModuleRef("EditorFramework", minVersionCondition((5, 0)))
    assert not ref.appliesTo(EngineVersion(4, 27))
    assert ref.appliesTo(EngineVersion(5, 0))
    assert ModuleRef("Core").appliesTo(EngineVersion(0, 0))
    assert str(ref) == "EditorFramework [>=5.0]"


def test_target_context_create():
    ctx = TargetContext.create("game", "5.2")
    assert ctx.targetType is TargetType.GAME
    assert ctx.engineVersion == EngineVersion(5, 2)
    assert str(ctx) == "Game@5.2"


def test_registry_is_a_mapping_sorted_by_name():
    registry = DescriptorRegistry([ModuleDescriptor(name="Engine"), ModuleDescriptor(name="Core")])
    assert len(registry) == 2
    assert "Core" in registry
    assert registry["Engine"].name == "Engine"
    assert [desc.name for desc in registry.all()] == ["Core", "Engine"]


def test_registry_rejects_duplicate_names():
    first = ModuleDescriptor(name="Core", sourcePath=Path("a/Core.module.json5"))
    second = ModuleDescriptor(name="Core", sourcePath=Path("b/Core.module.json5"))
    registry = DescriptorRegistry([first])
    with pytest.raises(DuplicateModule) as excinfo:
        registry.register(second)
    assert excinfo.value.moduleName == "Core"
    assert len(excinfo.value.sources) == 2
