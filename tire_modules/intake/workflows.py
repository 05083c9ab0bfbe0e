"""
Intake Workflows (``tire_modules.intake.workflows``).

Responsibility
--------------
Declares the purchase-order state machine.  Receipt transitions are
guarded by the fulfillment counters: ``all_lines_received`` when every
line's received quantity has reached its ordered quantity,
``some_units_received`` when at least one unit has arrived.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``tire_kernel.domain.workflow``.

Audit relevance
---------------
Workflow definitions logged at module-load time with state counts and
transition counts for configuration audit.
"""

from tire_kernel.domain.workflow import Guard, Transition, Workflow
from tire_kernel.logging_config import get_logger
from tire_modules.intake.models import PurchaseOrderStatus

logger = get_logger("modules.intake.workflows")

DRAFT = PurchaseOrderStatus.DRAFT.value
APPROVED = PurchaseOrderStatus.APPROVED.value
ORDERED = PurchaseOrderStatus.ORDERED.value
PARTIALLY_RECEIVED = PurchaseOrderStatus.PARTIALLY_RECEIVED.value
FULLY_RECEIVED = PurchaseOrderStatus.FULLY_RECEIVED.value
CANCELLED = PurchaseOrderStatus.CANCELLED.value
CLOSED = PurchaseOrderStatus.CLOSED.value

# Actions
APPROVE = "approve"
MARK_ORDERED = "mark_ordered"
RECORD_RECEIPT = "record_receipt"
CANCEL = "cancel"
CLOSE = "close"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ALL_LINES_RECEIVED = Guard(
    name="all_lines_received",
    description="Received quantity has reached ordered quantity across all lines",
)

SOME_UNITS_RECEIVED = Guard(
    name="some_units_received",
    description="At least one unit has been received against the order",
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

_RECEIVING = (APPROVED, ORDERED, PARTIALLY_RECEIVED)

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Tire purchase order from draft through receipt",
    initial_state=DRAFT,
    states=(
        DRAFT,
        APPROVED,
        ORDERED,
        PARTIALLY_RECEIVED,
        FULLY_RECEIVED,
        CANCELLED,
        CLOSED,
    ),
    transitions=(
        Transition(DRAFT, APPROVED, action=APPROVE),
        Transition(APPROVED, ORDERED, action=MARK_ORDERED),
        # fully received is tried first; it implies some units received
        *(
            Transition(source, FULLY_RECEIVED, action=RECORD_RECEIPT, guard=ALL_LINES_RECEIVED)
            for source in _RECEIVING
        ),
        *(
            Transition(source, PARTIALLY_RECEIVED, action=RECORD_RECEIPT, guard=SOME_UNITS_RECEIVED)
            for source in _RECEIVING
        ),
        Transition(DRAFT, CANCELLED, action=CANCEL),
        Transition(APPROVED, CANCELLED, action=CANCEL),
        Transition(ORDERED, CANCELLED, action=CANCEL),
        Transition(PARTIALLY_RECEIVED, CLOSED, action=CLOSE),
        Transition(FULLY_RECEIVED, CLOSED, action=CLOSE),
    ),
    terminal_states=(CANCELLED, CLOSED),
)

logger.info(
    "purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "guards": [ALL_LINES_RECEIVED.name, SOME_UNITS_RECEIVED.name],
    },
)
