"""
Tire Lifecycle Workflow.

The tire status state machine.  Every module that changes a tire's status
(assignment, intake, retread, lifecycle) goes through these transitions;
``movement_type`` names the Movement Log entry each one writes.
"""

from tire_kernel.domain.values import MovementType, TireStatus
from tire_kernel.domain.workflow import Transition, Workflow
from tire_kernel.logging_config import get_logger

logger = get_logger("modules.lifecycle.workflows")

IN_STORE = TireStatus.IN_STORE.value
ON_VEHICLE = TireStatus.ON_VEHICLE.value
USED_STORE = TireStatus.USED_STORE.value
AWAITING_RETREAD = TireStatus.AWAITING_RETREAD.value
AT_RETREAD_SUPPLIER = TireStatus.AT_RETREAD_SUPPLIER.value
DISPOSED = TireStatus.DISPOSED.value
SCRAP = TireStatus.SCRAP.value

NON_TERMINAL = (IN_STORE, ON_VEHICLE, USED_STORE, AWAITING_RETREAD, AT_RETREAD_SUPPLIER)

# Actions
INSTALL = "install"
REMOVE = "remove"
MARK_FOR_RETREAD = "mark_for_retread"
ENQUEUE_RETREAD = "enqueue_retread"
SEND_TO_RETREAD = "send_to_retread"
ACCEPT_RETREAD = "accept_retread"
REJECT_RETREAD = "reject_retread"
RELEASE_FROM_RETREAD = "release_from_retread"
RECALL_FROM_RETREAD = "recall_from_retread"
DISPOSE = "dispose"
REVERSE_DISPOSAL = "reverse_disposal"


TIRE_LIFECYCLE_WORKFLOW = Workflow(
    name="tire_lifecycle",
    description="Custody lifecycle of a serialized tire",
    initial_state=IN_STORE,
    states=(
        IN_STORE,
        ON_VEHICLE,
        USED_STORE,
        AWAITING_RETREAD,
        AT_RETREAD_SUPPLIER,
        DISPOSED,
        SCRAP,
    ),
    transitions=(
        Transition(IN_STORE, ON_VEHICLE, action=INSTALL,
                   movement_type=MovementType.STORE_TO_VEHICLE.value),
        Transition(ON_VEHICLE, USED_STORE, action=REMOVE,
                   movement_type=MovementType.VEHICLE_TO_STORE.value),
        Transition(ON_VEHICLE, IN_STORE, action=REMOVE,
                   movement_type=MovementType.VEHICLE_TO_STORE.value),
        # bulk queueing from the store floor
        Transition(USED_STORE, AWAITING_RETREAD, action=MARK_FOR_RETREAD,
                   movement_type=MovementType.INTERNAL_TRANSFER.value),
        # inclusion in a draft retread order; no custody change
        Transition(USED_STORE, AWAITING_RETREAD, action=ENQUEUE_RETREAD),
        Transition(AWAITING_RETREAD, AWAITING_RETREAD, action=ENQUEUE_RETREAD),
        Transition(AWAITING_RETREAD, AT_RETREAD_SUPPLIER, action=SEND_TO_RETREAD,
                   movement_type=MovementType.STORE_TO_RETREAD_SUPPLIER.value),
        Transition(AT_RETREAD_SUPPLIER, USED_STORE, action=ACCEPT_RETREAD,
                   movement_type=MovementType.RETREAD_SUPPLIER_TO_STORE.value),
        Transition(AT_RETREAD_SUPPLIER, DISPOSED, action=REJECT_RETREAD,
                   movement_type=MovementType.STORE_TO_DISPOSAL.value),
        # draft order cancelled or deleted
        Transition(AWAITING_RETREAD, USED_STORE, action=RELEASE_FROM_RETREAD),
        # sent order cancelled
        Transition(AT_RETREAD_SUPPLIER, USED_STORE, action=RECALL_FROM_RETREAD,
                   movement_type=MovementType.RETREAD_SUPPLIER_TO_STORE.value),
        *(
            Transition(source, target, action=DISPOSE,
                       movement_type=MovementType.STORE_TO_DISPOSAL.value)
            for source in NON_TERMINAL
            for target in (DISPOSED, SCRAP)
        ),
        Transition(DISPOSED, USED_STORE, action=REVERSE_DISPOSAL,
                   movement_type=MovementType.DISPOSAL_REVERSAL.value),
        Transition(SCRAP, USED_STORE, action=REVERSE_DISPOSAL,
                   movement_type=MovementType.DISPOSAL_REVERSAL.value),
    ),
    terminal_states=(DISPOSED, SCRAP),
    escape_actions=(REVERSE_DISPOSAL,),
)

logger.info(
    "tire_lifecycle_workflow_registered",
    extra={
        "workflow_name": TIRE_LIFECYCLE_WORKFLOW.name,
        "state_count": len(TIRE_LIFECYCLE_WORKFLOW.states),
        "transition_count": len(TIRE_LIFECYCLE_WORKFLOW.transitions),
        "initial_state": TIRE_LIFECYCLE_WORKFLOW.initial_state,
    },
)
