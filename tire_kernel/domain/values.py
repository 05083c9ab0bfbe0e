"""
Enumerated value types shared by kernel models, DTOs and modules.

Every enum is a ``str`` Enum whose value is what is stored in the
database column, so comparisons against loaded rows work without
conversion.
"""

from enum import Enum


class TireStatus(str, Enum):
    IN_STORE = "IN_STORE"
    ON_VEHICLE = "ON_VEHICLE"
    USED_STORE = "USED_STORE"
    AWAITING_RETREAD = "AWAITING_RETREAD"
    AT_RETREAD_SUPPLIER = "AT_RETREAD_SUPPLIER"
    DISPOSED = "DISPOSED"
    SCRAP = "SCRAP"


TERMINAL_TIRE_STATUSES = frozenset({TireStatus.DISPOSED, TireStatus.SCRAP})


class TireCategory(str, Enum):
    NEW = "NEW"
    RETREADED = "RETREADED"


class DisposalMethod(str, Enum):
    """How a disposed tire left custody.  SCRAP lands on status SCRAP."""
    DISPOSAL = "DISPOSAL"
    SCRAP = "SCRAP"
    RECYCLE = "RECYCLE"
    RETURN_TO_SUPPLIER = "RETURN_TO_SUPPLIER"


class MovementType(str, Enum):
    PURCHASE_TO_STORE = "PURCHASE_TO_STORE"
    STORE_TO_VEHICLE = "STORE_TO_VEHICLE"
    VEHICLE_TO_STORE = "VEHICLE_TO_STORE"
    STORE_TO_RETREAD_SUPPLIER = "STORE_TO_RETREAD_SUPPLIER"
    RETREAD_SUPPLIER_TO_STORE = "RETREAD_SUPPLIER_TO_STORE"
    STORE_TO_DISPOSAL = "STORE_TO_DISPOSAL"
    DISPOSAL_REVERSAL = "DISPOSAL_REVERSAL"
    INTERNAL_TRANSFER = "INTERNAL_TRANSFER"


class ReferenceType(str, Enum):
    """Kind of document that triggered a movement."""
    ASSIGNMENT = "ASSIGNMENT"
    GRN = "GRN"
    RETREAD_ORDER = "RETREAD_ORDER"


class VehicleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RETIRED = "RETIRED"


class SupplierType(str, Enum):
    TIRE = "TIRE"
    RETREAD = "RETREAD"


class LedgerEntryKind(str, Enum):
    """Supplier ledger entry kinds.  PAYMENT reduces the balance."""
    PURCHASE = "PURCHASE"
    RETREAD_SERVICE = "RETREAD_SERVICE"
    PAYMENT = "PAYMENT"

    @property
    def sign(self) -> int:
        return -1 if self is LedgerEntryKind.PAYMENT else 1
