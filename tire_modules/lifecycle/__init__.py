"""
Tire Lifecycle Module.

The tire status state machine, the custody helper every module uses to
change a tire's status and location, and the lifecycle operations that
stand on their own: registration, disposal, reversal, retread queueing.
"""

from tire_modules.lifecycle.custody import TireCustody
from tire_modules.lifecycle.models import (
    BulkDisposalResult,
    BulkRetreadQueueResult,
    TireOutcome,
)
from tire_modules.lifecycle.service import TireLifecycleService
from tire_modules.lifecycle.workflows import TIRE_LIFECYCLE_WORKFLOW

__all__ = [
    "BulkDisposalResult",
    "BulkRetreadQueueResult",
    "TIRE_LIFECYCLE_WORKFLOW",
    "TireCustody",
    "TireLifecycleService",
    "TireOutcome",
]
