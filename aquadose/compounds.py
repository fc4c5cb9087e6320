"""Dry-salt composition table and stock solution recipes.

The composition table maps every supported :class:`Compound` to the fraction
of its mass contributed by each nutrient. It is read once from
``dry_salts.yaml`` (falling back to the built-in values below when the
dataset is missing), validated and exposed as read-only mappings so later
calculations cannot alter it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

import voluptuous as vol

from .exceptions import MissingDataError, ValidationError
from .nutrients import Compound, Nutrient, PpmMap, freeze_ppm_map
from .units import mg_to_ppm
from .utils import cached_table, load_dataset, require_positive

__all__ = [
    "DATA_FILE",
    "CompositionTable",
    "composition_table",
    "dedicated_compounds",
    "get_fraction",
    "StockRecipe",
    "Stock",
]

_LOGGER = logging.getLogger(__name__)

DATA_FILE = "dry_salts.yaml"

_DEFAULT_DATA = {
    "compounds": {
        "KNO3": {"NO3": 0.613, "K": 0.387},
        "KH2PO4": {"PO4": 0.698, "K": 0.287},
        "K2SO4": {"K": 0.449, "S": 0.184},
        "MgSO4": {"Mg": 0.0986, "S": 0.130},
    },
    "dedicated": {"NO3": "KNO3", "PO4": "KH2PO4", "K": "K2SO4", "Mg": "MgSO4"},
}

_FRACTION = vol.All(vol.Coerce(float), vol.Range(min=0, max=1, min_included=False))

DATASET_SCHEMA = vol.Schema(
    {
        vol.Required("compounds"): vol.Schema({str: vol.Schema({str: _FRACTION})}),
        vol.Optional("dedicated", default={}): vol.Schema({str: str}),
    },
    extra=vol.ALLOW_EXTRA,
)

CompositionTable = Mapping[Compound, PpmMap]


def _parse_dataset(raw: Mapping) -> tuple[CompositionTable, Mapping[Nutrient, Compound]]:
    try:
        data = DATASET_SCHEMA(dict(raw))
    except vol.Invalid as exc:
        raise ValidationError(f"Invalid {DATA_FILE}: {exc}") from exc

    table = {
        Compound.parse(name): freeze_ppm_map(
            {Nutrient.parse(n): frac for n, frac in fractions.items()}
        )
        for name, fractions in data["compounds"].items()
    }
    dedicated: dict[Nutrient, Compound] = {}
    for nutrient, name in data["dedicated"].items():
        compound = Compound.parse(name)
        nut = Nutrient.parse(nutrient)
        if nut not in table.get(compound, {}):
            raise ValidationError(f"{compound.value} does not provide {nut.value}")
        if compound in dedicated.values():
            raise ValidationError(f"{compound.value} is dedicated to more than one nutrient")
        dedicated[nut] = compound

    for nut, compound in dedicated.items():
        for other, other_compound in dedicated.items():
            if other is not nut and other in table[compound] and nut in table[other_compound]:
                raise ValidationError(
                    f"{compound.value} and {other_compound.value} supply each other's nutrients"
                )
    return MappingProxyType(table), MappingProxyType(dedicated)


@cached_table
def _load() -> tuple[CompositionTable, Mapping[Nutrient, Compound]]:
    raw = load_dataset(DATA_FILE)
    if not isinstance(raw, Mapping) or not raw:
        _LOGGER.warning("Using built-in dry salt composition table")
        raw = _DEFAULT_DATA
    return _parse_dataset(raw)


def composition_table() -> CompositionTable:
    """Return the read-only compound composition table."""
    return _load()[0]


def dedicated_compounds() -> Mapping[Nutrient, Compound]:
    """Return the compound sized for each nutrient in the dry-salt path."""
    return _load()[1]


def get_fraction(
    compound: Compound | str,
    nutrient: Nutrient | str,
    table: CompositionTable | None = None,
) -> float:
    """Return the mass fraction of ``nutrient`` in ``compound``.

    :class:`MissingDataError` is raised when the compound does not provide
    the nutrient.
    """
    table = composition_table() if table is None else table
    c = Compound.parse(compound)
    n = Nutrient.parse(nutrient)
    fraction = table.get(c, {}).get(n)
    if fraction is None:
        raise MissingDataError(f"{c.value} does not provide {n.value}")
    return fraction


@dataclass(frozen=True, slots=True)
class StockRecipe:
    """Dry salt dissolved in water to make a stock solution."""

    compound: Compound
    mass_g: float
    final_volume_ml: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "compound", Compound.parse(self.compound))
        object.__setattr__(self, "mass_g", require_positive("mass_g", self.mass_g))
        object.__setattr__(
            self,
            "final_volume_ml",
            require_positive("final_volume_ml", self.final_volume_ml),
        )

    def build(self, table: CompositionTable | None = None) -> "Stock":
        """Return the :class:`Stock` produced by this recipe."""
        return Stock.from_recipe(self, table)


@dataclass(frozen=True, slots=True)
class Stock:
    """Stock solution with its derived concentrations in mg/mL."""

    recipe: StockRecipe
    compound_mg_per_ml: float
    nutrient_mg_per_ml: PpmMap

    @classmethod
    def from_recipe(
        cls, recipe: StockRecipe, table: CompositionTable | None = None
    ) -> "Stock":
        table = composition_table() if table is None else table
        fractions = table.get(recipe.compound)
        if fractions is None:
            raise MissingDataError(f"No composition data for {recipe.compound.value}")
        mg_per_ml = recipe.mass_g * 1000 / recipe.final_volume_ml
        return cls(
            recipe=recipe,
            compound_mg_per_ml=mg_per_ml,
            nutrient_mg_per_ml=freeze_ppm_map(
                {n: mg_per_ml * frac for n, frac in fractions.items()}
            ),
        )

    @property
    def compound(self) -> Compound:
        return self.recipe.compound

    def dose_ml(self, compound_mg: float) -> float:
        """Return mL of stock containing ``compound_mg`` of the salt."""
        if compound_mg < 0:
            raise ValidationError("compound_mg must be non-negative")
        return compound_mg / self.compound_mg_per_ml

    def dose_ml_for_ppm(
        self, nutrient: Nutrient | str, target_ppm: float, tank_liters: float
    ) -> float:
        """Return mL of stock raising ``nutrient`` by ``target_ppm``."""
        n = Nutrient.parse(nutrient)
        require_positive("tank_liters", tank_liters)
        require_positive("target_ppm", target_ppm)
        per_ml = self.nutrient_mg_per_ml.get(n)
        if not per_ml:
            raise MissingDataError(f"{self.compound.value} does not provide {n.value}")
        return target_ppm * tank_liters / per_ml

    def ppm_from_dose(self, dose_ml: float, tank_liters: float) -> dict[Nutrient, float]:
        """Return ppm raised per nutrient by ``dose_ml`` of stock."""
        if dose_ml < 0:
            raise ValidationError("dose_ml must be non-negative")
        return {
            n: mg_to_ppm(mg_per_ml * dose_ml, tank_liters)
            for n, mg_per_ml in self.nutrient_mg_per_ml.items()
        }
