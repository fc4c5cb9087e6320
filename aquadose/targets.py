"""Dosing target table for the supported fertilization methods."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

import voluptuous as vol

from .exceptions import MissingDataError, ValidationError
from .nutrients import DoseCategory, PpmMap, ParsableEnum, freeze_ppm_map, parse_ppm_map
from .utils import cached_table, load_dataset, normalize_key

__all__ = [
    "DATA_FILE",
    "DosingMethod",
    "TargetBasis",
    "LevelTargets",
    "MethodTargets",
    "target_table",
    "get_targets",
    "list_levels",
]

_LOGGER = logging.getLogger(__name__)

DATA_FILE = "dosing_targets.yaml"


class DosingMethod(ParsableEnum):
    """Supported dosing methods."""

    PPS = "pps"
    EI = "ei"


class TargetBasis(str, Enum):
    """Whether a method's targets apply per day or per single dose."""

    PER_DAY = "per_day"
    PER_DOSE = "per_dose"


_DEFAULT_DATA = {
    "pps": {
        "basis": "per_day",
        "levels": {
            "standard": {
                "macro": {"NO3": 1.0, "PO4": 0.1, "K": 1.3, "Mg": 0.1},
                "micro": {"Fe": 0.02},
            },
        },
    },
    "ei": {
        "basis": "per_dose",
        "levels": {
            "standard": {
                "macro": {"NO3": 5, "PO4": 0.5, "K": 5},
                "micro": {"Fe": 0.1},
            },
        },
    },
}

_LEVEL_SCHEMA = vol.Schema(
    {
        vol.Optional("macro", default={}): dict,
        vol.Optional("micro", default={}): dict,
    }
)

DATASET_SCHEMA = vol.Schema(
    {
        str: vol.Schema(
            {
                vol.Required("basis"): vol.In([b.value for b in TargetBasis]),
                vol.Required("levels"): vol.Schema({str: _LEVEL_SCHEMA}),
            },
            extra=vol.ALLOW_EXTRA,
        )
    }
)


@dataclass(frozen=True, slots=True)
class LevelTargets:
    """Macro and micro ppm targets for one method level."""

    macro: PpmMap
    micro: PpmMap

    def for_category(self, category: DoseCategory | str) -> PpmMap:
        if DoseCategory.parse(category) is DoseCategory.MACRO:
            return self.macro
        return self.micro


@dataclass(frozen=True, slots=True)
class MethodTargets:
    """Target levels defined for a dosing method."""

    method: DosingMethod
    basis: TargetBasis
    levels: Mapping[str, LevelTargets]


def _parse_dataset(raw: Mapping) -> Mapping[DosingMethod, MethodTargets]:
    try:
        data = DATASET_SCHEMA(dict(raw))
    except vol.Invalid as exc:
        raise ValidationError(f"Invalid {DATA_FILE}: {exc}") from exc

    table: dict[DosingMethod, MethodTargets] = {}
    for name, info in data.items():
        method = DosingMethod.parse(name)
        levels = {
            normalize_key(level): LevelTargets(
                macro=freeze_ppm_map(parse_ppm_map(values["macro"], name="target")),
                micro=freeze_ppm_map(parse_ppm_map(values["micro"], name="target")),
            )
            for level, values in info["levels"].items()
        }
        table[method] = MethodTargets(
            method=method,
            basis=TargetBasis(info["basis"]),
            levels=MappingProxyType(levels),
        )
    return MappingProxyType(table)


@cached_table
def target_table() -> Mapping[DosingMethod, MethodTargets]:
    """Return the read-only dosing target table."""
    raw = load_dataset(DATA_FILE)
    if not isinstance(raw, Mapping) or not raw:
        _LOGGER.warning("Using built-in dosing target table")
        raw = _DEFAULT_DATA
    return _parse_dataset(raw)


def _method_targets(method: DosingMethod | str) -> MethodTargets:
    m = DosingMethod.parse(method)
    targets = target_table().get(m)
    if targets is None:
        raise MissingDataError(f"No dosing targets for method '{m.value}'")
    return targets


def list_levels(method: DosingMethod | str) -> list[str]:
    """Return the level names defined for ``method``."""
    return sorted(_method_targets(method).levels)


def get_targets(method: DosingMethod | str, level: str) -> tuple[TargetBasis, LevelTargets]:
    """Return the target basis and level targets for ``method``/``level``."""
    targets = _method_targets(method)
    level_targets = targets.levels.get(normalize_key(level))
    if level_targets is None:
        raise MissingDataError(
            f"Unknown level '{level}' for method '{targets.method.value}'"
        )
    return targets.basis, level_targets
