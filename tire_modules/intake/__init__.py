"""
Intake Module.

Purchase orders and goods received notes: a GRN receipt creates one
IN_STORE tire per delivered unit, advances the order's fulfillment
counters and charges the supplier.
"""

from tire_modules.intake.models import (
    GRNInfo,
    GRNItemSpec,
    GRNResult,
    PurchaseOrderInfo,
    PurchaseOrderLineSpec,
    PurchaseOrderStatus,
)
from tire_modules.intake.service import IntakeService, PurchaseOrderService

__all__ = [
    "GRNInfo",
    "GRNItemSpec",
    "GRNResult",
    "IntakeService",
    "PurchaseOrderInfo",
    "PurchaseOrderLineSpec",
    "PurchaseOrderService",
    "PurchaseOrderStatus",
]
