"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The Movement Log is the sole historical record of a tire.  If a movement,
a supplier charge, or a closed assignment could be edited in place, the
history would silently stop agreeing with what happened.  Corrections are
made by appending new facts (a disposal reversal, a payment), never by
rewriting old ones.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below check the rules and raise
ImmutabilityViolationError, which aborts the flush and, through
``db.engine.transaction()``, rolls back the whole operation.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When Immutable                     | Allowed
------------------------|------------------------------------|----------------------------
Movement                | ALWAYS                             | -
SupplierLedgerEntry     | ALWAYS                             | -
WheelPosition           | ALWAYS                             | -
RetreadReceiving/Item   | ALWAYS                             | -
TireAssignment          | once closed; never deletable       | closing an open row
Tire                    | never deletable                    | all updates
RetreadTimelineEntry    | no UPDATE; DELETE only while the   | draft deletion
                        | parent order is DRAFT              |

updated_at / updated_by_id are attribution metadata and may change on a
row whose other fields are frozen.

===============================================================================
USAGE
===============================================================================

``init_engine_from_url()`` registers the listeners.  Registration and
removal are idempotent:

    from tire_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()   # TESTS ONLY
"""

from sqlalchemy import event, inspect, select

from tire_kernel.exceptions import ImmutabilityViolationError
from tire_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _block(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _append_only_update(mapper, connection, target):
    entity_type = type(target).__name__
    changed = _changed_fields(target)
    if not changed:
        return
    _block(
        entity_type, target, "UPDATE",
        f"{entity_type} records are append-only; cannot modify '{changed[0]}'",
        field=changed[0],
    )


def _append_only_delete(mapper, connection, target):
    entity_type = type(target).__name__
    _block(entity_type, target, "DELETE", f"{entity_type} records cannot be deleted")


def _check_tire_delete(mapper, connection, target):
    _block("Tire", target, "DELETE", "Tires are never deleted; dispose them instead")


def _check_assignment_update(mapper, connection, target):
    """
    Allow exactly one update in an assignment's life: closing it.

    removal_date history tells whether the row was already closed before
    this flush: an old non-null value, or an unchanged non-null value.
    """
    hist = inspect(target).attrs.removal_date.history
    if hist.deleted:
        was_closed = hist.deleted[0] is not None
    elif not hist.added:
        was_closed = target.removal_date is not None
    else:
        was_closed = False

    if not was_closed:
        return
    changed = _changed_fields(target)
    if changed:
        _block(
            "TireAssignment", target, "UPDATE",
            f"Closed assignments cannot be modified ('{changed[0]}')",
            field=changed[0],
        )


def _check_assignment_delete(mapper, connection, target):
    _block("TireAssignment", target, "DELETE", "Assignments are never deleted")


def _check_timeline_delete(mapper, connection, target):
    from tire_modules.retread.models import RetreadOrderStatus
    from tire_modules.retread.orm import RetreadOrderModel

    status = connection.execute(
        select(RetreadOrderModel.status).where(RetreadOrderModel.id == target.order_id)
    ).scalar_one_or_none()
    if status is None or status == RetreadOrderStatus.DRAFT.value:
        return
    _block(
        "RetreadTimelineEntry", target, "DELETE",
        f"Timeline entries of a {status} order cannot be deleted",
    )


def _listeners():
    from tire_kernel.models import (
        Movement,
        SupplierLedgerEntry,
        Tire,
        TireAssignment,
        WheelPosition,
    )
    from tire_modules.retread.orm import (
        RetreadReceivedItemModel,
        RetreadReceivingModel,
        RetreadTimelineEntryModel,
    )

    registrations = []
    for model in (
        Movement,
        SupplierLedgerEntry,
        WheelPosition,
        RetreadReceivingModel,
        RetreadReceivedItemModel,
    ):
        registrations.append((model, "before_update", _append_only_update))
        registrations.append((model, "before_delete", _append_only_delete))

    registrations += [
        (Tire, "before_delete", _check_tire_delete),
        (TireAssignment, "before_update", _check_assignment_update),
        (TireAssignment, "before_delete", _check_assignment_delete),
        (RetreadTimelineEntryModel, "before_update", _append_only_update),
        (RetreadTimelineEntryModel, "before_delete", _check_timeline_delete),
    ]
    return registrations


def register_immutability_listeners():
    """Register every immutability listener (idempotent)."""
    count = 0
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)
            count += 1
    if count:
        logger.debug("immutability_listeners_registered", extra={"count": count})


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability listeners.

    WARNING: Only use this in tests that deliberately violate the rules.
    """
    for target, event_name, fn in _listeners():
        _safe_remove_listener(target, event_name, fn)
