"""Selectors for the tire kernel (read side)."""

from tire_kernel.selectors.supplier_selector import SupplierSelector
from tire_kernel.selectors.tire_selector import PositionOccupancy, TireSelector

__all__ = [
    "PositionOccupancy",
    "SupplierSelector",
    "TireSelector",
]
