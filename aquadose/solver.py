"""Anchor-nutrient dose solving and forward ppm projection."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict

from .exceptions import DomainError, MissingDataError
from .nutrients import DoseCategory, Nutrient
from .solutions import REFERENCE_TANK_GALLONS, ManualRateSpec, NormalizedSolution
from .utils import require_positive

__all__ = [
    "ANCHOR_NUTRIENTS",
    "anchor_for",
    "solve_dose",
    "implied_concentration",
    "scale_manual_rate",
]

_LOGGER = logging.getLogger(__name__)

# A blend is dosed so that its anchor nutrient hits the target exactly; the
# other nutrients in the bottle follow from that dose.
ANCHOR_NUTRIENTS = MappingProxyType(
    {
        DoseCategory.MACRO: Nutrient.NO3,
        DoseCategory.MICRO: Nutrient.Fe,
    }
)


def anchor_for(category: DoseCategory | str) -> Nutrient:
    """Return the anchor nutrient used for ``category`` blends."""
    return ANCHOR_NUTRIENTS[DoseCategory.parse(category)]


def solve_dose(
    tank_gallons: float,
    normalized: NormalizedSolution,
    target_ppm: float,
    anchor: Nutrient | str,
) -> float:
    """Return mL of solution raising ``anchor`` by ``target_ppm``.

    Parameters
    ----------
    tank_gallons : float
        Tank volume in US gallons. Must be positive.
    normalized : NormalizedSolution
        Output of :func:`aquadose.solutions.normalize`.
    target_ppm : float
        Desired increase of the anchor nutrient. Must be positive; a zero
        target has no unique solving dose.
    anchor : Nutrient | str
        Nutrient the dose is sized for.

    Raises
    ------
    ValidationError
        If the tank size or target is not positive.
    MissingDataError
        If ``normalized`` has no positive concentration for ``anchor``.
    """

    tank = require_positive("tank_gallons", tank_gallons)
    target = require_positive("target_ppm", target_ppm)
    nutrient = Nutrient.parse(anchor)

    ppm_per_ml = normalized.get(nutrient)
    if ppm_per_ml is None:
        raise MissingDataError(f"No ppm data for anchor nutrient {nutrient.value}")
    if ppm_per_ml <= 0:
        raise MissingDataError(
            f"Anchor nutrient {nutrient.value} has no positive concentration"
        )

    dose_ml = target * (tank / REFERENCE_TANK_GALLONS) / ppm_per_ml
    _LOGGER.debug(
        "Solved %.4f mL for %.4f ppm %s in %.2f gal", dose_ml, target, nutrient.value, tank
    )
    return dose_ml


def implied_concentration(
    tank_gallons: float,
    normalized: NormalizedSolution,
    dose_ml: float,
) -> Dict[Nutrient, float]:
    """Return ppm raised for every tracked nutrient by ``dose_ml``.

    A zero dose is accepted and projects zero for each nutrient.
    """

    tank = require_positive("tank_gallons", tank_gallons)
    dose = require_positive("dose_ml", dose_ml, allow_zero=True)

    tank_scale = REFERENCE_TANK_GALLONS / tank
    return {n: ppm * dose * tank_scale for n, ppm in normalized.ppm_per_ml.items()}


def scale_manual_rate(tank_gallons: float, spec: ManualRateSpec) -> float:
    """Return mL per dose for ``tank_gallons`` from a manual rate."""
    if not isinstance(spec, ManualRateSpec):
        raise DomainError(f"Expected a manual rate specification, got {type(spec).__name__}")
    tank = require_positive("tank_gallons", tank_gallons)
    rate = require_positive("ml_per_10_gallons", spec.ml_per_10_gallons)
    return rate * (tank / REFERENCE_TANK_GALLONS)
