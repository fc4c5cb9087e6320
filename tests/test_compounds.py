import json

import pytest

from aquadose.compounds import (
    Stock,
    StockRecipe,
    composition_table,
    dedicated_compounds,
    get_fraction,
)
from aquadose.exceptions import DomainError, MissingDataError, ValidationError
from aquadose.nutrients import Compound, Nutrient
from aquadose.utils import clear_dataset_cache


def test_composition_table_defaults():
    table = composition_table()
    assert table[Compound.KNO3][Nutrient.NO3] == 0.613
    assert table[Compound.KH2PO4][Nutrient.K] == 0.287
    assert table[Compound.K2SO4][Nutrient.K] == 0.449
    assert dedicated_compounds()[Nutrient.K] is Compound.K2SO4


def test_composition_table_is_read_only():
    table = composition_table()
    with pytest.raises(TypeError):
        table[Compound.KNO3] = {}
    with pytest.raises(TypeError):
        table[Compound.KNO3][Nutrient.NO3] = 1.0


def test_get_fraction():
    assert get_fraction("kno3", "no3") == 0.613
    with pytest.raises(MissingDataError):
        get_fraction("KNO3", "PO4")
    with pytest.raises(DomainError):
        get_fraction("urea", "NO3")


def test_stock_from_recipe():
    stock = StockRecipe("KNO3", 40, 500).build()
    assert stock.compound_mg_per_ml == pytest.approx(80)
    assert stock.nutrient_mg_per_ml[Nutrient.NO3] == pytest.approx(80 * 0.613)
    assert stock.nutrient_mg_per_ml[Nutrient.K] == pytest.approx(80 * 0.387)
    assert stock.dose_ml(160) == pytest.approx(2)


def test_stock_dose_for_ppm():
    stock = Stock.from_recipe(StockRecipe(Compound.KNO3, 40, 500))
    liters = 98.42066
    ml = stock.dose_ml_for_ppm("NO3", 5, liters)
    assert stock.ppm_from_dose(ml, liters)[Nutrient.NO3] == pytest.approx(5)
    with pytest.raises(MissingDataError):
        stock.dose_ml_for_ppm("PO4", 1, liters)


def test_stock_recipe_validation():
    with pytest.raises(ValidationError):
        StockRecipe("KNO3", 0, 500)
    with pytest.raises(ValidationError):
        StockRecipe("KNO3", 40, -1)
    with pytest.raises(DomainError):
        StockRecipe("CaNO3", 40, 500)


def test_composition_overlay(tmp_path, monkeypatch):
    (tmp_path / "dry_salts.json").write_text(
        json.dumps({"compounds": {"KNO3": {"NO3": 0.62}}})
    )
    monkeypatch.setattr("aquadose.compounds.DATA_FILE", "dry_salts.json")
    monkeypatch.setenv("AQUADOSE_DATA_DIR", str(tmp_path))
    assert get_fraction("KNO3", "NO3") == 0.62
    assert Compound.KH2PO4 not in composition_table()


def test_composition_dataset_rejects_bad_fraction(tmp_path, monkeypatch):
    (tmp_path / "dry_salts.yaml").write_text("compounds:\n  KNO3:\n    NO3: 1.5\n")
    monkeypatch.setenv("AQUADOSE_DATA_DIR", str(tmp_path))
    with pytest.raises(ValidationError):
        composition_table()


def test_missing_dataset_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("AQUADOSE_DATA_DIR", str(tmp_path))
    assert get_fraction("MgSO4", "Mg") == 0.0986


def test_clear_dataset_cache_reloads_composition(tmp_path, monkeypatch):
    assert get_fraction("KNO3", "NO3") == 0.613
    (tmp_path / "dry_salts.yaml").write_text("compounds:\n  KNO3:\n    NO3: 0.62\n")
    monkeypatch.setenv("AQUADOSE_OVERLAY_DIR", str(tmp_path))
    assert get_fraction("KNO3", "NO3") == 0.613
    clear_dataset_cache()
    assert get_fraction("KNO3", "NO3") == 0.62
    assert get_fraction("KNO3", "K") == 0.387


def test_composition_dataset_rejects_mutual_supply(tmp_path, monkeypatch):
    (tmp_path / "dry_salts.yaml").write_text(
        "compounds:\n"
        "  KNO3: {NO3: 0.6, K: 0.4}\n"
        "  K2SO4: {K: 0.45, NO3: 0.1}\n"
        "dedicated: {NO3: KNO3, K: K2SO4}\n"
    )
    monkeypatch.setenv("AQUADOSE_DATA_DIR", str(tmp_path))
    with pytest.raises(ValidationError):
        composition_table()
