import pytest

from aquadose.exceptions import DomainError, MissingDataError, ValidationError
from aquadose.nutrients import Nutrient
from aquadose.targets import DosingMethod, TargetBasis, get_targets, list_levels, target_table


def test_target_table_contents():
    basis, targets = get_targets("ei", "standard")
    assert basis is TargetBasis.PER_DOSE
    assert targets.macro[Nutrient.NO3] == 5
    assert targets.micro[Nutrient.Fe] == 0.1

    basis, targets = get_targets(DosingMethod.PPS, "Standard")
    assert basis is TargetBasis.PER_DAY
    assert targets.for_category("macro")[Nutrient.NO3] == 1.0


def test_list_levels():
    assert list_levels("pps") == ["lean", "rich", "standard"]
    assert "standard" in list_levels("ei")


def test_unknown_method_and_level():
    with pytest.raises(DomainError):
        get_targets("weekly", "standard")
    with pytest.raises(MissingDataError):
        get_targets("ei", "extreme")


def test_target_table_is_read_only():
    table = target_table()
    with pytest.raises(TypeError):
        table[DosingMethod.EI] = None


def test_overlay_adds_level(tmp_path, monkeypatch):
    (tmp_path / "dosing_targets.yaml").write_text(
        "ei:\n  levels:\n    heavy:\n      macro: {NO3: 10}\n      micro: {Fe: 0.2}\n"
    )
    monkeypatch.setenv("AQUADOSE_OVERLAY_DIR", str(tmp_path))
    _, heavy = get_targets("ei", "heavy")
    assert heavy.macro[Nutrient.NO3] == 10
    _, standard = get_targets("ei", "standard")
    assert standard.macro[Nutrient.NO3] == 5


def test_invalid_target_dataset(tmp_path, monkeypatch):
    (tmp_path / "dosing_targets.yaml").write_text(
        "ei:\n  basis: per_week\n  levels: {}\n"
    )
    monkeypatch.setenv("AQUADOSE_DATA_DIR", str(tmp_path))
    with pytest.raises(ValidationError):
        target_table()
