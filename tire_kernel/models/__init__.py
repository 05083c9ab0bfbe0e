"""ORM models shared by every lifecycle module."""

from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.movement import Movement
from tire_kernel.models.supplier import Supplier, SupplierLedgerEntry
from tire_kernel.models.tire import Tire
from tire_kernel.models.vehicle import Vehicle, WheelPosition

__all__ = [
    "Movement",
    "Supplier",
    "SupplierLedgerEntry",
    "Tire",
    "TireAssignment",
    "Vehicle",
    "WheelPosition",
]
