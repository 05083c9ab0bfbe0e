"""
Pure domain layer.

Value types, DTOs, wheel-position templates and workflow definitions
with NO dependencies on the ORM, the database or I/O.  The only clock
that reads real time is SystemClock.
"""

from tire_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from tire_kernel.domain.dtos import (
    AssignmentInfo,
    LedgerEntryInfo,
    MovementInfo,
    SupplierInfo,
    TireInfo,
    VehicleInfo,
    WheelPositionInfo,
)
from tire_kernel.domain.positions import (
    POSITION_TEMPLATES,
    SlotDefinition,
    WheelConfiguration,
    parse_configuration,
    slots_for,
)
from tire_kernel.domain.values import (
    TERMINAL_TIRE_STATUSES,
    DisposalMethod,
    LedgerEntryKind,
    MovementType,
    ReferenceType,
    SupplierType,
    TireCategory,
    TireStatus,
    VehicleStatus,
)
from tire_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # DTOs
    "AssignmentInfo",
    "LedgerEntryInfo",
    "MovementInfo",
    "SupplierInfo",
    "TireInfo",
    "VehicleInfo",
    "WheelPositionInfo",
    # Positions
    "POSITION_TEMPLATES",
    "SlotDefinition",
    "WheelConfiguration",
    "parse_configuration",
    "slots_for",
    # Values
    "TERMINAL_TIRE_STATUSES",
    "DisposalMethod",
    "LedgerEntryKind",
    "MovementType",
    "ReferenceType",
    "SupplierType",
    "TireCategory",
    "TireStatus",
    "VehicleStatus",
    # Workflow
    "Guard",
    "Transition",
    "Workflow",
]
