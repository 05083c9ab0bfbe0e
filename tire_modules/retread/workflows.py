"""
Retread Workflows (``tire_modules.retread.workflows``).

Responsibility
--------------
Declares the retread-order state machine.  The status a ``receive`` call
lands on is chosen by guards over the outcome counts of that call and
the number of items still awaiting an outcome:

* ``partial_outcome``    -- rejections plus acceptances in the call, or
                            rejections while items remain pending:
                            PARTIALLY_RECEIVED
* ``all_items_resolved`` -- nothing pending: COMPLETED
* ``no_rejections``      -- only acceptances, items pending: RECEIVED

Candidates are tried in that order, so a mixed batch that resolves the
last pending item is still PARTIALLY_RECEIVED.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.

Audit relevance
---------------
Workflow definitions logged at module-load time with state counts and
transition counts for configuration audit.
"""

from tire_kernel.domain.workflow import Guard, Transition, Workflow
from tire_kernel.logging_config import get_logger
from tire_modules.retread.models import RetreadOrderStatus

logger = get_logger("modules.retread.workflows")

DRAFT = RetreadOrderStatus.DRAFT.value
SENT = RetreadOrderStatus.SENT.value
RECEIVED = RetreadOrderStatus.RECEIVED.value
PARTIALLY_RECEIVED = RetreadOrderStatus.PARTIALLY_RECEIVED.value
COMPLETED = RetreadOrderStatus.COMPLETED.value
CANCELLED = RetreadOrderStatus.CANCELLED.value

# Actions
SEND = "send"
RECEIVE = "receive"
CANCEL = "cancel"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

PARTIAL_OUTCOME = Guard(
    name="partial_outcome",
    description="Rejections alongside acceptances, or rejections with items still pending",
)

ALL_ITEMS_RESOLVED = Guard(
    name="all_items_resolved",
    description="No order item is still awaiting an outcome",
)

NO_REJECTIONS = Guard(
    name="no_rejections",
    description="Every result in the batch was accepted",
)


# -----------------------------------------------------------------------------
# Retread Order Workflow
# -----------------------------------------------------------------------------

_RECEIVING = (SENT, RECEIVED, PARTIALLY_RECEIVED)

RETREAD_ORDER_WORKFLOW = Workflow(
    name="retread_order",
    description="Batch of tires sent to one retread supplier",
    initial_state=DRAFT,
    states=(DRAFT, SENT, RECEIVED, PARTIALLY_RECEIVED, COMPLETED, CANCELLED),
    transitions=(
        Transition(DRAFT, SENT, action=SEND),
        *(
            Transition(source, target, action=RECEIVE, guard=guard)
            for source in _RECEIVING
            for target, guard in (
                (PARTIALLY_RECEIVED, PARTIAL_OUTCOME),
                (COMPLETED, ALL_ITEMS_RESOLVED),
                (RECEIVED, NO_REJECTIONS),
            )
        ),
        Transition(DRAFT, CANCELLED, action=CANCEL),
        Transition(SENT, CANCELLED, action=CANCEL),
    ),
    terminal_states=(COMPLETED, CANCELLED),
)

logger.info(
    "retread_order_workflow_registered",
    extra={
        "workflow_name": RETREAD_ORDER_WORKFLOW.name,
        "state_count": len(RETREAD_ORDER_WORKFLOW.states),
        "transition_count": len(RETREAD_ORDER_WORKFLOW.transitions),
        "guards": [PARTIAL_OUTCOME.name, ALL_ITEMS_RESOLVED.name, NO_REJECTIONS.name],
    },
)
