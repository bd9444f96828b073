# tests/buildrules/version/test_engine_version.py
import pytest

from buildrules.version.engine_version import (
    EngineVersion,
    VersionCondition,
    minVersionCondition,
    parseEngineVersion,
    parseVersionCondition,
    versionSatisfiesCondition,
)


def _matches(raw: str | None, candidates: list[str]) -> list[str]:
    cond = parseVersionCondition(raw)
    vers = [parseEngineVersion(v) for v in candidates]
    return [str(v) for v in vers if versionSatisfiesCondition(v, cond)]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5.1", EngineVersion(5, 1)),
        ("5", EngineVersion(5, 0)),
        ("v5.3", EngineVersion(5, 3)),
        (" 4.27 ", EngineVersion(4, 27)),
        ((5, 1), EngineVersion(5, 1)),
        ([5], EngineVersion(5, 0)),
        ({"major": 5, "minor": 2}, EngineVersion(5, 2)),
        (EngineVersion(6, 0), EngineVersion(6, 0)),
    ],
)
def test_parse_engine_version_accepted_forms(raw, expected):
    assert parseEngineVersion(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", ".1", "5.", "5..1", "5.1.2", "05.1", "five", "-1"])
def test_parse_engine_version_rejects_malformed_text(raw):
    with pytest.raises(ValueError):
        parseEngineVersion(raw)


@pytest.mark.parametrize("raw", [5.1, [True, 1], {"major": "5"}, b"5.1"])
def test_parse_engine_version_rejects_wrong_types(raw):
    with pytest.raises(TypeError):
        parseEngineVersion(raw)


def test_engine_version_ordering_is_major_then_minor():
    assert EngineVersion(4, 27) < EngineVersion(5, 0)
    assert EngineVersion(5, 0) < EngineVersion(5, 1)
    assert EngineVersion(5, 10) > EngineVersion(5, 9)
    assert sorted([EngineVersion(5, 1), EngineVersion(4, 27), EngineVersion(5, 0)]) == [
        EngineVersion(4, 27),
        EngineVersion(5, 0),
        EngineVersion(5, 1),
    ]


def test_negative_components_rejected():
    with pytest.raises(ValueError):
        EngineVersion(-1, 0)


def test_min_version_condition_is_open_ended():
    cond = minVersionCondition("5.0")
    assert not cond(EngineVersion(4, 27))
    assert cond(EngineVersion(5, 0))
    assert cond(EngineVersion(5, 3))
    assert cond(EngineVersion(6, 0))
    assert cond(EngineVersion(12, 7))


@pytest.mark.parametrize("raw", [None, "", "   ", "*"])
def test_condition_parse_any(raw):
    assert parseVersionCondition(raw) is None
    assert versionSatisfiesCondition(EngineVersion(1, 0), parseVersionCondition(raw))


def test_condition_exact_version():
    assert _matches("5.1", ["5.0", "5.1", "5.2"]) == ["5.1"]
    assert _matches("==5.1", ["5.0", "5.1", "5.2"]) == ["5.1"]


def test_condition_basic_inequalities():
    assert _matches(">=5.0 <5.3", ["4.27", "5.0", "5.2", "5.3", "6.0"]) == ["5.0", "5.2"]
    assert _matches(">5.0", ["5.0", "5.1"]) == ["5.1"]
    assert _matches("<=4.27", ["4.26", "4.27", "5.0"]) == ["4.26", "4.27"]


def test_condition_hyphen_range_is_inclusive():
    assert _matches("5.0 - 5.2", ["4.27", "5.0", "5.1", "5.2", "5.3"]) == ["5.0", "5.1", "5.2"]


def test_invalid_hyphen_range_upper_less_than_lower():
    with pytest.raises(ValueError):
        parseVersionCondition("5.2 - 5.0")


@pytest.mark.parametrize("raw", [">=", ">= ", "<=x.y", "5.0 - ", "=>5.0", "~5.0"])
def test_condition_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parseVersionCondition(raw)


def test_condition_str():
    cond = parseVersionCondition(">=5.0 <5.3")
    assert isinstance(cond, VersionCondition)
    assert str(cond) == ">=5.0 <5.3"


@pytest.mark.parametrize("raw", [">= 5.0", ">=  5.0", " >=\t5.0 "])
def test_condition_allows_space_after_operator(raw):
    assert parseVersionCondition(raw) == parseVersionCondition(">=5.0")


def test_condition_space_after_operator_in_compound():
    assert _matches(">= 5.0 < 5.3", ["4.27", "5.0", "5.2", "5.3"]) == ["5.0", "5.2"]
    assert str(parseVersionCondition("<= 4.27")) == "<=4.27"


def test_unquoted_float_version_asks_for_quotes():
    with pytest.raises(TypeError, match="must be quoted"):
        parseEngineVersion(5.0)
