"""Services for the tire kernel (write side, flush only)."""

from tire_kernel.services.base import BaseService, load_for_update, require_actor
from tire_kernel.services.movement_log import MovementLog
from tire_kernel.services.position_registry import PositionRegistry
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_kernel.services.workflow_executor import (
    GuardExecutor,
    TransitionResult,
    WorkflowExecutor,
)

__all__ = [
    "BaseService",
    "GuardExecutor",
    "MovementLog",
    "PositionRegistry",
    "SupplierLedger",
    "TransitionResult",
    "WorkflowExecutor",
    "load_for_update",
    "require_actor",
]
