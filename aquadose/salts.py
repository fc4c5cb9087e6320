"""Dry-salt dosing with cross-compound deficit balancing.

Several salts supply more than one nutrient. Potassium, for instance, comes
along with KNO3 and KH2PO4 which are sized for nitrate and phosphate. Before
the potassium salt is sized, the potassium already delivered by those
compounds is subtracted from the potassium target so it is not dosed twice.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict

from .compounds import CompositionTable, Stock, composition_table, dedicated_compounds
from .exceptions import MissingDataError, ValidationError
from .nutrients import Compound, Nutrient, freeze_ppm_map, parse_ppm_map
from .units import mg_to_ppm, ppm_to_mg
from .utils import require_positive

__all__ = [
    "SaltDosePlan",
    "balance_compounds",
    "size_compounds",
    "plan_stock_doses",
]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SaltDosePlan:
    """Compound masses (mg) chosen for a set of nutrient targets."""

    tank_liters: float
    targets: Mapping[Nutrient, float]
    compound_mg: Mapping[Compound, float]
    # incidental supply and outstanding need for nutrients shared between salts
    provided_mg: Mapping[Nutrient, float]
    deficit_mg: Mapping[Nutrient, float]

    def delivered_ppm(self, table: CompositionTable | None = None) -> Dict[Nutrient, float]:
        """Return the ppm increase produced by all compounds together."""
        table = composition_table() if table is None else table
        totals: Dict[Nutrient, float] = {}
        for compound, mg in self.compound_mg.items():
            for nutrient, fraction in table[compound].items():
                totals[nutrient] = totals.get(nutrient, 0.0) + mg * fraction
        return {n: mg_to_ppm(mg, self.tank_liters) for n, mg in totals.items()}


def _split_shared(
    active: Iterable[Nutrient],
    table: CompositionTable,
    dedicated: Mapping[Nutrient, Compound],
) -> tuple[list[Nutrient], list[Nutrient]]:
    """Return ``(primary, secondary)`` nutrients in sizing order.

    A nutrient is secondary when another targeted nutrient's compound also
    supplies it. Secondary nutrients are ordered so each one is sized after
    every other secondary compound that supplies it.

    Raises
    ------
    ValidationError
        If the compounds of two or more secondary nutrients supply each other.
    """
    active = list(active)
    primary: list[Nutrient] = []
    secondary: list[Nutrient] = []
    for nutrient in active:
        shared = any(
            nutrient in table[dedicated[other]] for other in active if other is not nutrient
        )
        (secondary if shared else primary).append(nutrient)

    ordered: list[Nutrient] = []
    pending = secondary
    while pending:
        ready = [
            n
            for n in pending
            if not any(n in table[dedicated[o]] for o in pending if o is not n)
        ]
        if not ready:
            names = ", ".join(dedicated[n].value for n in pending)
            raise ValidationError(f"Compounds {names} supply each other's nutrients")
        ordered.extend(ready)
        pending = [n for n in pending if n not in ready]
    return primary, ordered


def balance_compounds(
    tank_liters: float,
    targets: Mapping[Nutrient | str, float],
    *,
    table: CompositionTable | None = None,
    dedicated: Mapping[Nutrient, Compound] | None = None,
) -> SaltDosePlan:
    """Return the compound masses raising each nutrient by its target ppm.

    Compounds for nutrients that no other targeted compound supplies are
    sized first. Shared nutrients are then sized against the deficit left
    after subtracting what those compounds already contribute, floored at
    zero. A zero target yields a zero mass for that nutrient's compound.

    Raises
    ------
    ValidationError
        If ``tank_liters`` is not positive, a target is negative, or the
        compounds of shared nutrients supply each other.
    MissingDataError
        If a target nutrient has no dedicated compound.
    """

    liters = require_positive("tank_liters", tank_liters)
    table = composition_table() if table is None else table
    dedicated = dedicated_compounds() if dedicated is None else dedicated
    parsed = parse_ppm_map(targets, name="target")

    compound_mg: Dict[Compound, float] = {}
    for nutrient in parsed:
        compound = dedicated.get(nutrient)
        if compound is None:
            raise MissingDataError(f"No dedicated compound supplies {nutrient.value}")
        if compound not in table:
            raise MissingDataError(f"No composition data for {compound.value}")
        compound_mg[compound] = 0.0

    active = [n for n in Nutrient if parsed.get(n, 0.0) > 0]
    primary, secondary = _split_shared(active, table, dedicated)

    for nutrient in primary:
        compound = dedicated[nutrient]
        compound_mg[compound] = ppm_to_mg(parsed[nutrient], liters) / table[compound][nutrient]

    provided: Dict[Nutrient, float] = {}
    deficits: Dict[Nutrient, float] = {}
    for nutrient in secondary:
        compound = dedicated[nutrient]
        already = sum(
            mg * table[c].get(nutrient, 0.0) for c, mg in compound_mg.items() if c is not compound
        )
        deficit = max(0.0, ppm_to_mg(parsed[nutrient], liters) - already)
        provided[nutrient] = already
        deficits[nutrient] = deficit
        compound_mg[compound] = deficit / table[compound][nutrient]
        _LOGGER.debug(
            "%s: %.2f mg already provided, %.2f mg deficit sized with %s",
            nutrient.value,
            already,
            deficit,
            compound.value,
        )

    return SaltDosePlan(
        tank_liters=liters,
        targets=freeze_ppm_map(parsed),
        compound_mg=MappingProxyType(compound_mg),
        provided_mg=freeze_ppm_map(provided),
        deficit_mg=freeze_ppm_map(deficits),
    )


def size_compounds(
    tank_liters: float,
    targets: Mapping[Nutrient | str, float],
    *,
    table: CompositionTable | None = None,
    dedicated: Mapping[Nutrient, Compound] | None = None,
) -> Dict[Compound, float]:
    """Return milligrams of each compound needed for ``targets``."""
    plan = balance_compounds(tank_liters, targets, table=table, dedicated=dedicated)
    return dict(plan.compound_mg)


def plan_stock_doses(
    plan: SaltDosePlan, stocks: Iterable[Stock] | Mapping[Compound, Stock]
) -> Dict[Compound, float]:
    """Return mL of each stock solution delivering ``plan``'s compound masses."""

    if isinstance(stocks, Mapping):
        by_compound = {Compound.parse(c): s for c, s in stocks.items()}
    else:
        by_compound = {s.compound: s for s in stocks}

    doses: Dict[Compound, float] = {}
    for compound, mg in plan.compound_mg.items():
        stock = by_compound.get(compound)
        if stock is None:
            if mg > 0:
                raise MissingDataError(f"No stock solution for {compound.value}")
            doses[compound] = 0.0
            continue
        if stock.compound is not compound:
            raise ValidationError(
                f"Stock for {compound.value} is made from {stock.compound.value}"
            )
        doses[compound] = stock.dose_ml(mg)
    return doses
