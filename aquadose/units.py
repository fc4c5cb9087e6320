"""Shared unit conversion helpers for the dosing engine."""

from __future__ import annotations

from .exceptions import ValidationError

__all__ = [
    "LITERS_PER_GALLON",
    "UNIT_CONVERSIONS",
    "convert",
    "gallons_to_liters",
    "liters_to_gallons",
    "ppm_to_mg",
    "mg_to_ppm",
]

LITERS_PER_GALLON = 3.78541

# Factors to the base unit of each dimension (grams or liters).
UNIT_CONVERSIONS = {
    "mg": ("mass", 0.001),
    "g": ("mass", 1.0),
    "kg": ("mass", 1000.0),
    "mL": ("volume", 0.001),
    "L": ("volume", 1.0),
    "gal": ("volume", LITERS_PER_GALLON),
}


def convert(value: float, from_unit: str, to_unit: str) -> float:
    """Convert ``value`` between two units of the same dimension."""
    if from_unit not in UNIT_CONVERSIONS:
        raise ValidationError(f"Unsupported unit: {from_unit}")
    if to_unit not in UNIT_CONVERSIONS:
        raise ValidationError(f"Unsupported unit: {to_unit}")
    if from_unit == to_unit:
        return value
    src_dim, src_factor = UNIT_CONVERSIONS[from_unit]
    dst_dim, dst_factor = UNIT_CONVERSIONS[to_unit]
    if src_dim != dst_dim:
        raise ValidationError(f"Unsupported conversion: {from_unit} -> {to_unit}")
    return value * src_factor / dst_factor


def gallons_to_liters(gallons: float) -> float:
    """Return US ``gallons`` expressed in liters."""
    if gallons < 0:
        raise ValidationError("gallons must be non-negative")
    return gallons * LITERS_PER_GALLON


def liters_to_gallons(liters: float) -> float:
    """Return ``liters`` expressed in US gallons."""
    if liters < 0:
        raise ValidationError("liters must be non-negative")
    return liters / LITERS_PER_GALLON


def ppm_to_mg(ppm: float, liters: float) -> float:
    """Return milligrams of solute giving ``ppm`` in ``liters`` of water.

    ppm is treated as mg/L.
    """
    if ppm < 0:
        raise ValidationError("ppm must be non-negative")
    if liters < 0:
        raise ValidationError("liters must be non-negative")
    return ppm * liters


def mg_to_ppm(mg: float, liters: float) -> float:
    """Return the ppm concentration of ``mg`` dissolved in ``liters``."""
    if mg < 0:
        raise ValidationError("mg must be non-negative")
    if liters <= 0:
        raise ValidationError("liters must be positive")
    return mg / liters
