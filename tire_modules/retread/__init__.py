"""
Retread Module.

Retread-order batches: tires queued in the warehouse are sent to a
retread supplier together, come back accepted or rejected, and every
status change of the order is narrated on its timeline.
"""

from tire_modules.retread.models import (
    RetreadItemStatus,
    RetreadOrderInfo,
    RetreadOrderStatus,
    RetreadOutcome,
    RetreadQuality,
    RetreadReceiveResult,
    RetreadResult,
)
from tire_modules.retread.service import RetreadService
from tire_modules.retread.workflows import RETREAD_ORDER_WORKFLOW

__all__ = [
    "RETREAD_ORDER_WORKFLOW",
    "RetreadItemStatus",
    "RetreadOrderInfo",
    "RetreadOrderStatus",
    "RetreadOutcome",
    "RetreadQuality",
    "RetreadReceiveResult",
    "RetreadResult",
    "RetreadService",
]
