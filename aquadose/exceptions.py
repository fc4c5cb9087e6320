"""Exception types raised by the dosing engine."""

from __future__ import annotations

__all__ = ["DosingError", "ValidationError", "MissingDataError", "DomainError"]


class DosingError(Exception):
    """Base class for all dosing engine errors."""


class ValidationError(DosingError, ValueError):
    """A numeric input is outside its permitted range."""


class MissingDataError(DosingError, KeyError):
    """A required nutrient, compound or table entry is not available."""

    def __str__(self) -> str:  # KeyError quotes its argument
        return str(self.args[0]) if self.args else ""


class DomainError(DosingError, TypeError):
    """An input tag is outside the closed set of recognised variants."""
