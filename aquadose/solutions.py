"""Liquid fertilizer descriptions and their normalization.

A solution is described in one of two ways:

``ReferenceDoseSpec``
    The label (or a measurement) states how many ppm of each nutrient a
    reference dose raises in a reference tank.
``ManualRateSpec``
    Only a dosing rate in mL per 10 gallons is known.

:func:`normalize` converts either form into a :class:`NormalizedSolution`
holding the ppm one millilitre raises in a 10 gallon tank. Dose solving and
forward projection in :mod:`aquadose.solver` operate on that canonical form.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Union

import voluptuous as vol

from .exceptions import DomainError, ValidationError
from .nutrients import Nutrient, PpmMap, freeze_ppm_map, parse_ppm_map
from .utils import require_positive

__all__ = [
    "REFERENCE_TANK_GALLONS",
    "ReferenceDoseSpec",
    "ManualRateSpec",
    "SolutionSpec",
    "NormalizedSolution",
    "normalize",
    "solution_from_dict",
]

_LOGGER = logging.getLogger(__name__)

# Every normalized concentration is expressed for this tank size.
REFERENCE_TANK_GALLONS = 10.0


@dataclass(frozen=True, slots=True)
class ReferenceDoseSpec:
    """``reference_dose_ml`` in ``reference_tank_gallons`` raises ``ppm_at_reference``."""

    kind: ClassVar[str] = "ppm_per_reference_dose"

    reference_tank_gallons: float
    reference_dose_ml: float
    ppm_at_reference: Mapping[Nutrient | str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "ppm_at_reference", MappingProxyType(dict(self.ppm_at_reference))
        )

    def __hash__(self) -> int:
        return hash(
            (
                self.reference_tank_gallons,
                self.reference_dose_ml,
                frozenset(self.ppm_at_reference.items()),
            )
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "reference_tank_gallons": self.reference_tank_gallons,
            "reference_dose_ml": self.reference_dose_ml,
            "ppm_at_reference": {
                Nutrient.parse(n).value: ppm for n, ppm in self.ppm_at_reference.items()
            },
        }


@dataclass(frozen=True, slots=True)
class ManualRateSpec:
    """A known dosing rate with no per-nutrient breakdown."""

    kind: ClassVar[str] = "manual_ml_per_10g"

    ml_per_10_gallons: float

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "ml_per_10_gallons": self.ml_per_10_gallons}


SolutionSpec = Union[ReferenceDoseSpec, ManualRateSpec]


@dataclass(frozen=True, slots=True)
class NormalizedSolution:
    """ppm raised by 1 mL of solution in a :data:`REFERENCE_TANK_GALLONS` tank."""

    ppm_per_ml: PpmMap

    def get(self, nutrient: Nutrient | str) -> float | None:
        """Return the concentration for ``nutrient`` or ``None`` when untracked."""
        return self.ppm_per_ml.get(Nutrient.parse(nutrient))

    @property
    def nutrients(self) -> tuple[Nutrient, ...]:
        return tuple(self.ppm_per_ml)

    def __bool__(self) -> bool:
        return bool(self.ppm_per_ml)


def normalize(spec: SolutionSpec) -> NormalizedSolution:
    """Return the canonical per-mL, per-10-gallon profile of ``spec``.

    ppm rises linearly with dose volume and falls inversely with tank volume,
    so a reference measurement is rescaled by ``reference_tank_gallons / 10``
    and by ``1 / reference_dose_ml``. A manual rate has no nutrient breakdown
    and normalizes to an empty profile.
    """

    if isinstance(spec, ReferenceDoseSpec):
        tank = require_positive("reference_tank_gallons", spec.reference_tank_gallons)
        dose = require_positive("reference_dose_ml", spec.reference_dose_ml)
        observed = parse_ppm_map(spec.ppm_at_reference, name="ppm_at_reference")

        volume_scale = tank / REFERENCE_TANK_GALLONS
        dose_scale = 1 / dose
        profile = {n: ppm * volume_scale * dose_scale for n, ppm in observed.items()}
        _LOGGER.debug("Normalized reference dose spec to %s", profile)
        return NormalizedSolution(freeze_ppm_map(profile))

    if isinstance(spec, ManualRateSpec):
        return NormalizedSolution(freeze_ppm_map({}))

    raise DomainError(f"Unknown solution specification {type(spec).__name__}")


_REFERENCE_SCHEMA = vol.Schema(
    {
        vol.Required("kind"): ReferenceDoseSpec.kind,
        vol.Required("reference_tank_gallons"): vol.Coerce(float),
        vol.Required("reference_dose_ml"): vol.Coerce(float),
        vol.Required("ppm_at_reference"): vol.Schema({str: vol.Coerce(float)}),
    }
)

_MANUAL_SCHEMA = vol.Schema(
    {
        vol.Required("kind"): ManualRateSpec.kind,
        vol.Required("ml_per_10_gallons"): vol.Coerce(float),
    }
)

_SCHEMAS = {
    ReferenceDoseSpec.kind: (_REFERENCE_SCHEMA, ReferenceDoseSpec),
    ManualRateSpec.kind: (_MANUAL_SCHEMA, ManualRateSpec),
}


def solution_from_dict(data: Mapping[str, Any]) -> SolutionSpec:
    """Return the solution specification serialized in ``data``.

    The ``kind`` key selects the variant. An unrecognised kind raises
    :class:`DomainError`; malformed fields raise :class:`ValidationError`.
    """

    if not isinstance(data, Mapping):
        raise DomainError("Solution specification must be a mapping")
    kind = data.get("kind")
    if not isinstance(kind, str) or kind not in _SCHEMAS:
        raise DomainError(f"Unknown solution specification kind '{kind}'")

    schema, cls = _SCHEMAS[kind]
    try:
        values = schema(dict(data))
    except vol.Invalid as exc:
        raise ValidationError(f"Invalid {kind} specification: {exc}") from exc
    values.pop("kind")
    return cls(**values)
