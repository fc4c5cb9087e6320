"""Assemble weekly dose plans for the supported dosing methods."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import DomainError, MissingDataError
from .nutrients import DoseCategory, Nutrient, PpmMap, freeze_ppm_map
from .schedule import (
    DAYS_PER_WEEK,
    SCHEDULE_STRATEGIES,
    DoseEvent,
    DosingDays,
    EiSchedule,
    assemble_events,
)
from .solutions import ManualRateSpec, SolutionSpec, normalize, solution_from_dict
from .solver import anchor_for, implied_concentration, scale_manual_rate, solve_dose
from .targets import DosingMethod, TargetBasis, get_targets
from .utils import normalize_key, require_positive

__all__ = ["DosePlan", "build_plan", "per_dose_targets"]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DosePlan:
    """Resolved doses and weekly events for one planning request.

    ``implied_macro_ppm``/``implied_micro_ppm`` are ``None`` when the
    corresponding solution was given as a manual rate.
    """

    method: DosingMethod
    level: str
    tank_gallons: float
    macro_ml_per_dose: float
    micro_ml_per_dose: float
    days: DosingDays
    events: tuple[DoseEvent, ...]
    macro_target_ppm: PpmMap
    micro_target_ppm: PpmMap
    implied_macro_ppm: PpmMap | None
    implied_micro_ppm: PpmMap | None

    @property
    def doses_per_week(self) -> int:
        """Number of macro doses in the week."""
        return len(self.days.macro_days)

    @property
    def water_change_day(self) -> int | None:
        return self.days.water_change_day

    def events_for(self, category: DoseCategory | str) -> tuple[DoseEvent, ...]:
        cat = DoseCategory.parse(category)
        return tuple(e for e in self.events if e.category is cat)

    def weekly_ml(self, category: DoseCategory | str) -> float:
        """Return total mL of ``category`` dosed over the week."""
        return sum(e.ml for e in self.events_for(category))


def per_dose_targets(
    basis: TargetBasis, targets: PpmMap, doses_per_week: int
) -> dict[Nutrient, float]:
    """Return ``targets`` expressed per single dose.

    Per-day targets are multiplied by ``7 / doses_per_week`` so the weekly
    total is unchanged; per-dose targets are returned as is.
    """
    if basis is TargetBasis.PER_DOSE:
        return dict(targets)
    factor = DAYS_PER_WEEK / doses_per_week
    return {n: ppm * factor for n, ppm in targets.items()}


def _coerce_spec(spec: SolutionSpec | Mapping[str, Any]) -> SolutionSpec:
    if isinstance(spec, Mapping):
        return solution_from_dict(spec)
    return spec


def _resolve_dose(
    tank_gallons: float,
    spec: SolutionSpec,
    category: DoseCategory,
    targets: PpmMap,
) -> tuple[float, PpmMap | None]:
    """Return ``(ml_per_dose, implied_ppm)`` for one blend."""
    if isinstance(spec, ManualRateSpec):
        return scale_manual_rate(tank_gallons, spec), None

    normalized = normalize(spec)
    anchor = anchor_for(category)
    target = targets.get(anchor)
    if target is None:
        raise MissingDataError(f"No {category.value} target for anchor {anchor.value}")
    dose_ml = solve_dose(tank_gallons, normalized, target, anchor)
    implied = implied_concentration(tank_gallons, normalized, dose_ml)
    return dose_ml, freeze_ppm_map(implied)


def build_plan(
    tank_gallons: float,
    method: DosingMethod | str,
    level: str,
    macro_spec: SolutionSpec | Mapping[str, Any],
    micro_spec: SolutionSpec | Mapping[str, Any],
    doses_per_week: int | None = None,
    schedule: EiSchedule | None = None,
) -> DosePlan:
    """Return the weekly :class:`DosePlan` for a tank.

    Parameters
    ----------
    tank_gallons : float
        Tank volume in US gallons.
    method : DosingMethod | str
        ``"pps"`` (per-day targets spread over ``doses_per_week`` days,
        default 7) or ``"ei"`` (per-dose targets on fixed alternating days).
    level : str
        Level name from the dosing target table.
    macro_spec, micro_spec : SolutionSpec | Mapping
        Solution descriptions, either objects or their serialized mappings.
    doses_per_week : int | None
        Dosing frequency. For ``"ei"`` it must match the schedule's macro
        days when given.
    schedule : EiSchedule | None
        Alternative fixed days for ``"ei"``.
    """

    tank = require_positive("tank_gallons", tank_gallons)
    m = DosingMethod.parse(method)
    strategy = SCHEDULE_STRATEGIES.get(m)
    if strategy is None:
        raise DomainError(f"No schedule strategy for method '{m.value}'")
    basis, level_targets = get_targets(m, level)
    days = strategy(doses_per_week, schedule)

    macro_targets = freeze_ppm_map(
        per_dose_targets(basis, level_targets.macro, len(days.macro_days))
    )
    micro_targets = freeze_ppm_map(
        per_dose_targets(basis, level_targets.micro, len(days.micro_days))
    )

    macro_ml, implied_macro = _resolve_dose(
        tank, _coerce_spec(macro_spec), DoseCategory.MACRO, macro_targets
    )
    micro_ml, implied_micro = _resolve_dose(
        tank, _coerce_spec(micro_spec), DoseCategory.MICRO, micro_targets
    )
    _LOGGER.debug(
        "%s/%s plan for %.2f gal: macro %.3f mL, micro %.3f mL",
        m.value,
        level,
        tank,
        macro_ml,
        micro_ml,
    )

    return DosePlan(
        method=m,
        level=normalize_key(level),
        tank_gallons=tank,
        macro_ml_per_dose=macro_ml,
        micro_ml_per_dose=micro_ml,
        days=days,
        events=assemble_events(days.macro_days, days.micro_days, macro_ml, micro_ml),
        macro_target_ppm=macro_targets,
        micro_target_ppm=micro_targets,
        implied_macro_ppm=implied_macro,
        implied_micro_ppm=implied_micro,
    )
