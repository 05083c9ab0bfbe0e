"""
Tire Modules.

Transaction-owning orchestration over the Tire Kernel.  Each module
contains:
- Domain models (frozen DTOs and enums)
- ORM tables for the aggregates it owns
- Workflows (state machines)
- A service whose public methods each run in one transaction

Modules:
- Fleet: vehicles, wheel positions, suppliers and payments
- Assignment: install/remove and the occupancy invariant
- Lifecycle: tire registration, disposal, reversal, retread queueing
- Intake: purchase orders and goods received notes
- Retread: retread-order batches (send, receive, cancel, duplicate)
"""

from tire_modules import assignment, fleet, intake, lifecycle, retread

__all__ = [
    "assignment",
    "fleet",
    "intake",
    "lifecycle",
    "retread",
]
