"""Nutrient, compound and dose category enumerations."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict

from .exceptions import DomainError
from .utils import require_positive

__all__ = [
    "ParsableEnum",
    "Nutrient",
    "Compound",
    "DoseCategory",
    "PpmMap",
    "parse_ppm_map",
    "freeze_ppm_map",
]


class ParsableEnum(str, Enum):
    """String enum that resolves members case-insensitively."""

    @classmethod
    def parse(cls, value: Any):
        """Return the member matching ``value`` or raise :class:`DomainError`."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().casefold()
        for member in cls:
            if member.value.casefold() == key:
                return member
        raise DomainError(f"Unknown {cls.__name__.lower()} '{value}'")


class Nutrient(ParsableEnum):
    """Dissolved nutrients tracked by the engine."""

    NO3 = "NO3"
    PO4 = "PO4"
    K = "K"
    Mg = "Mg"
    Fe = "Fe"
    Cu = "Cu"
    Mn = "Mn"
    Zn = "Zn"
    S = "S"


class Compound(ParsableEnum):
    """Dry fertilizer salts available for stock mixing."""

    KNO3 = "KNO3"
    KH2PO4 = "KH2PO4"
    K2SO4 = "K2SO4"
    MgSO4 = "MgSO4"


class DoseCategory(ParsableEnum):
    """Conventional grouping of fertilizer blends."""

    MACRO = "macro"
    MICRO = "micro"


PpmMap = Mapping[Nutrient, float]


def parse_ppm_map(data: Mapping[Any, Any], *, name: str = "ppm") -> Dict[Nutrient, float]:
    """Return ``data`` keyed by :class:`Nutrient` with validated float values.

    Keys are parsed with :meth:`Nutrient.parse`. Values must be finite and
    non-negative; zero is kept so that an explicit zero stays distinguishable
    from an absent nutrient.
    """

    result: Dict[Nutrient, float] = {}
    for key, value in data.items():
        nutrient = Nutrient.parse(key)
        result[nutrient] = require_positive(
            f"{name} for {nutrient.value}", value, allow_zero=True
        )
    return result


def freeze_ppm_map(data: Mapping[Nutrient, float]) -> PpmMap:
    """Return a read-only copy of ``data``."""
    return MappingProxyType(dict(data))
