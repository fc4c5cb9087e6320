"""Public API for the aquarium fertilizer dosing engine."""

from __future__ import annotations

import importlib

__all__ = [
    "Nutrient",
    "Compound",
    "DoseCategory",
    "DosingError",
    "ValidationError",
    "MissingDataError",
    "DomainError",
    "ReferenceDoseSpec",
    "ManualRateSpec",
    "NormalizedSolution",
    "normalize",
    "solution_from_dict",
    "solve_dose",
    "implied_concentration",
    "StockRecipe",
    "Stock",
    "balance_compounds",
    "size_compounds",
    "plan_stock_doses",
    "DosingMethod",
    "EiSchedule",
    "DoseEvent",
    "distribute",
    "DosePlan",
    "build_plan",
]


_MODULE_MAP = {
    "Nutrient": "nutrients",
    "Compound": "nutrients",
    "DoseCategory": "nutrients",
    "DosingError": "exceptions",
    "ValidationError": "exceptions",
    "MissingDataError": "exceptions",
    "DomainError": "exceptions",
    "ReferenceDoseSpec": "solutions",
    "ManualRateSpec": "solutions",
    "NormalizedSolution": "solutions",
    "normalize": "solutions",
    "solution_from_dict": "solutions",
    "solve_dose": "solver",
    "implied_concentration": "solver",
    "StockRecipe": "compounds",
    "Stock": "compounds",
    "balance_compounds": "salts",
    "size_compounds": "salts",
    "plan_stock_doses": "salts",
    "DosingMethod": "targets",
    "EiSchedule": "schedule",
    "DoseEvent": "schedule",
    "distribute": "schedule",
    "DosePlan": "planner",
    "build_plan": "planner",
}


def __getattr__(name: str):
    if name not in __all__:
        raise AttributeError(f"module 'aquadose' has no attribute {name!r}")
    module = importlib.import_module(f".{_MODULE_MAP[name]}", __name__)
    value = getattr(module, name)
    globals()[name] = value
    return value
