"""
Typed Exception Hierarchy for the Tire Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every lifecycle operation either commits completely or fails with exactly
one typed error.  Callers (HTTP handlers, batch jobs, tests) branch on the
exception TYPE and its ``code``, never on message text:

    try:
        assignments.install(...)
    except InvalidTireStateError as e:
        respond(409, code=e.code, tire=e.tire_id, status=e.current_status)
    except NotFoundError as e:
        respond(404, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TireKernelError (base)
    |
    +-- ValidationError              rejected before any write
    |   +-- MissingActorError
    |   +-- InvalidTireSpecError
    |   +-- InvalidQuantityError
    |   +-- SerialCountMismatchError
    |   +-- DuplicateSerialError
    |   +-- OverReceiptError
    |   +-- UnknownWheelConfigurationError
    |
    +-- NotFoundError                referenced entity absent
    |   +-- TireNotFoundError
    |   +-- VehicleNotFoundError
    |   +-- PositionNotFoundError
    |   +-- AssignmentNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- PurchaseOrderLineNotFoundError
    |   +-- GoodsReceivedNoteNotFoundError
    |   +-- RetreadOrderNotFoundError
    |   +-- RetreadOrderEmptyError
    |
    +-- InvalidStateError            operation illegal for current status
    |   +-- InvalidTireStateError
    |   +-- InvalidOrderStateError
    |   +-- InvalidVehicleStateError
    |
    +-- ConflictError                competing claim on the same resource
    |   +-- PositionOccupiedError
    |   +-- TireAlreadyAssignedError
    |   +-- TireCommittedToOrderError
    |   +-- VehicleHasMountedTiresError
    |   +-- OptimisticLockError
    |
    +-- StorageError                 transaction aborted by the store
    |   +-- ConstraintViolationError
    |   +-- TransactionFailedError
    |
    +-- ImmutabilityViolationError   audit record modification attempt

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|--------------------------------------
Validation      | MISSING_ACTOR                 | No actor supplied, no system actor
                | INVALID_TIRE_SPEC             | Unknown size or category
                | INVALID_QUANTITY              | Quantity <= 0 or negative amount
                | SERIAL_COUNT_MISMATCH         | len(serials) != quantity
                | DUPLICATE_SERIAL              | Serial repeated or already stored
                | OVER_RECEIPT                  | Receipt exceeds ordered quantity
                | UNKNOWN_WHEEL_CONFIGURATION   | Not a registered axle template
----------------|-------------------------------|--------------------------------------
NotFound        | TIRE_NOT_FOUND ... etc.       | Entity id does not resolve
                | RETREAD_ORDER_EMPTY           | Duplicate of an order with no tires
----------------|-------------------------------|--------------------------------------
InvalidState    | INVALID_TIRE_STATE            | Tire status forbids the action
                | INVALID_ORDER_STATE           | Order status forbids the action
                | INVALID_VEHICLE_STATE         | Vehicle retired
----------------|-------------------------------|--------------------------------------
Conflict        | POSITION_OCCUPIED             | Open assignment cannot be superseded
                | TIRE_ALREADY_ASSIGNED         | Tire has an open assignment
                | TIRE_COMMITTED_TO_ORDER       | Tire pending in an active order
                | VEHICLE_HAS_MOUNTED_TIRES     | Retiring a vehicle with tires on
                | OPTIMISTIC_LOCK_CONFLICT      | Row changed by another transaction
----------------|-------------------------------|--------------------------------------
Storage         | CONSTRAINT_VIOLATION          | Database constraint rejected a write
                | TRANSACTION_FAILED            | Store aborted the transaction
----------------|-------------------------------|--------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | UPDATE/DELETE of an audit record

===============================================================================
"""


class TireKernelError(Exception):
    """
    Base exception for all tire kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "TIRE_KERNEL_ERROR"


# Validation


class ValidationError(TireKernelError):
    """Missing or malformed input, rejected before any write."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class MissingActorError(ValidationError):
    """No actor identifier was supplied for a mutating operation."""

    code: str = "MISSING_ACTOR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__("actor_id", f"an actor is required for {operation}")


class InvalidTireSpecError(ValidationError):
    """Tire size or category is not recognised."""

    code: str = "INVALID_TIRE_SPEC"

    def __init__(self, field: str, value: str, allowed: tuple[str, ...]):
        self.value = value
        self.allowed = allowed
        super().__init__(field, f"'{value}' is not one of {', '.join(allowed)}")


class InvalidQuantityError(ValidationError):
    """A quantity or amount is out of range."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value):
        self.value = value
        super().__init__(field, f"{value} is out of range")


class SerialCountMismatchError(ValidationError):
    """Supplied serial list length differs from the received quantity."""

    code: str = "SERIAL_COUNT_MISMATCH"

    def __init__(self, line_id: str, quantity: int, serial_count: int):
        self.line_id = line_id
        self.quantity = quantity
        self.serial_count = serial_count
        super().__init__(
            "serial_numbers",
            f"line {line_id} received {quantity} units "
            f"but {serial_count} serial numbers were supplied",
        )


class DuplicateSerialError(ValidationError):
    """Serial number repeated within a request or already in the system."""

    code: str = "DUPLICATE_SERIAL"

    def __init__(self, serial_number: str, existing: bool = False):
        self.serial_number = serial_number
        self.existing = existing
        where = "already exists" if existing else "is repeated in the request"
        super().__init__("serial_number", f"{serial_number} {where}")


class OverReceiptError(ValidationError):
    """Receipt would push a purchase-order line past its ordered quantity."""

    code: str = "OVER_RECEIPT"

    def __init__(self, line_id: str, ordered: int, received: int):
        self.line_id = line_id
        self.ordered = ordered
        self.received = received
        super().__init__(
            "quantity",
            f"line {line_id} ordered {ordered}, receipt would bring it to {received}",
        )


class UnknownWheelConfigurationError(ValidationError):
    """Vehicle configuration is not one of the registered templates."""

    code: str = "UNKNOWN_WHEEL_CONFIGURATION"

    def __init__(self, configuration: str):
        self.configuration = configuration
        super().__init__("configuration", f"unknown wheel configuration '{configuration}'")


# Not found


class NotFoundError(TireKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"


class TireNotFoundError(NotFoundError):
    code: str = "TIRE_NOT_FOUND"

    def __init__(self, tire_id: str):
        self.tire_id = tire_id
        super().__init__(f"Tire not found: {tire_id}")


class VehicleNotFoundError(NotFoundError):
    code: str = "VEHICLE_NOT_FOUND"

    def __init__(self, vehicle_id: str):
        self.vehicle_id = vehicle_id
        super().__init__(f"Vehicle not found: {vehicle_id}")


class PositionNotFoundError(NotFoundError):
    """Position code does not belong to the vehicle."""

    code: str = "POSITION_NOT_FOUND"

    def __init__(self, vehicle_id: str, position_code: str):
        self.vehicle_id = vehicle_id
        self.position_code = position_code
        super().__init__(f"Position {position_code} not found on vehicle {vehicle_id}")


class AssignmentNotFoundError(NotFoundError):
    """Assignment missing or already closed."""

    code: str = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: str, reason: str = "not found"):
        self.assignment_id = assignment_id
        self.reason = reason
        super().__init__(f"Open assignment {assignment_id}: {reason}")


class SupplierNotFoundError(NotFoundError):
    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Purchase order not found: {order_id}")


class GoodsReceivedNoteNotFoundError(NotFoundError):
    code: str = "GRN_NOT_FOUND"

    def __init__(self, grn_id: str):
        self.grn_id = grn_id
        super().__init__(f"Goods received note not found: {grn_id}")


class PurchaseOrderLineNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_LINE_NOT_FOUND"

    def __init__(self, line_id: str, order_id: str | None = None):
        self.line_id = line_id
        self.order_id = order_id
        suffix = f" on purchase order {order_id}" if order_id else ""
        super().__init__(f"Purchase order line not found: {line_id}{suffix}")


class RetreadOrderNotFoundError(NotFoundError):
    code: str = "RETREAD_ORDER_NOT_FOUND"

    def __init__(self, order_id: str, tire_id: str | None = None):
        self.order_id = order_id
        self.tire_id = tire_id
        if tire_id:
            msg = f"Tire {tire_id} is not part of retread order {order_id}"
        else:
            msg = f"Retread order not found: {order_id}"
        super().__init__(msg)


class RetreadOrderEmptyError(NotFoundError):
    """Retread order has no tires to copy."""

    code: str = "RETREAD_ORDER_EMPTY"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Retread order {order_id} has no tires")


# Invalid state


class InvalidStateError(TireKernelError):
    """Operation is not legal for the entity's current status."""

    code: str = "INVALID_STATE"


class InvalidTireStateError(InvalidStateError):
    code: str = "INVALID_TIRE_STATE"

    def __init__(self, tire_id: str, current_status: str, action: str):
        self.tire_id = tire_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Tire {tire_id} in status {current_status} cannot {action}")


class InvalidOrderStateError(InvalidStateError):
    code: str = "INVALID_ORDER_STATE"

    def __init__(self, order_id: str, current_status: str, action: str):
        self.order_id = order_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Order {order_id} in status {current_status} cannot {action}")


class InvalidVehicleStateError(InvalidStateError):
    code: str = "INVALID_VEHICLE_STATE"

    def __init__(self, vehicle_id: str, current_status: str, action: str):
        self.vehicle_id = vehicle_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Vehicle {vehicle_id} in status {current_status} cannot {action}")


# Conflict


class ConflictError(TireKernelError):
    """Competing claim on a tire, position, or row version."""

    code: str = "CONFLICT"


class PositionOccupiedError(ConflictError):
    """Open assignment at the position cannot be closed implicitly."""

    code: str = "POSITION_OCCUPIED"

    def __init__(self, vehicle_id: str, position_code: str, reason: str):
        self.vehicle_id = vehicle_id
        self.position_code = position_code
        self.reason = reason
        super().__init__(f"Position {position_code} on vehicle {vehicle_id} is occupied: {reason}")


class TireAlreadyAssignedError(ConflictError):
    code: str = "TIRE_ALREADY_ASSIGNED"

    def __init__(self, tire_id: str, assignment_id: str):
        self.tire_id = tire_id
        self.assignment_id = assignment_id
        super().__init__(f"Tire {tire_id} already has open assignment {assignment_id}")


class TireCommittedToOrderError(ConflictError):
    """Tire still awaits an outcome in another active retread order."""

    code: str = "TIRE_COMMITTED_TO_ORDER"

    def __init__(self, tire_id: str, order_number: str):
        self.tire_id = tire_id
        self.order_number = order_number
        super().__init__(f"Tire {tire_id} is committed to retread order {order_number}")


class VehicleHasMountedTiresError(ConflictError):
    code: str = "VEHICLE_HAS_MOUNTED_TIRES"

    def __init__(self, vehicle_id: str, mounted: int):
        self.vehicle_id = vehicle_id
        self.mounted = mounted
        super().__init__(f"Vehicle {vehicle_id} still has {mounted} mounted tire(s)")


class OptimisticLockError(ConflictError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        target = f"{entity_type} {entity_id}" if entity_id else entity_type
        super().__init__(
            f"Optimistic lock conflict on {target}: "
            "entity was modified by another transaction"
        )


# Storage


class StorageError(TireKernelError):
    """The store aborted the transaction; nothing was applied."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class ConstraintViolationError(StorageError):
    code: str = "CONSTRAINT_VIOLATION"


class TransactionFailedError(StorageError):
    code: str = "TRANSACTION_FAILED"


# Immutability


class ImmutabilityViolationError(TireKernelError):
    """
    Attempted to modify or delete an immutable record.

    Movements, supplier ledger entries, wheel positions, closed
    assignments and retread timeline entries are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
