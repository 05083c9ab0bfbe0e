"""
Wheel position templates (``tire_kernel.domain.positions``).

Responsibility
--------------
Closed registry mapping each supported axle configuration to the ordered
list of wheel slots a vehicle of that configuration carries.  The
Position Registry service materialises these slots once, when the vehicle
is registered; afterwards the slots are immutable rows.

Invariants enforced
-------------------
* Only members of ``WheelConfiguration`` resolve to a template; any other
  name is rejected with ``UnknownWheelConfigurationError``.
* Slot codes are unique within a template and ordered front to back,
  left to right.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tire_kernel.exceptions import UnknownWheelConfigurationError


class WheelConfiguration(str, Enum):
    FOUR_BY_TWO = "4x2"
    SIX_BY_TWO = "6x2"
    SIX_BY_FOUR = "6x4"
    TRAILER_THREE_AXLE = "trailer_3axle"


@dataclass(frozen=True)
class SlotDefinition:
    """One wheel slot in a configuration template."""
    code: str
    name: str
    axle: int
    is_trailer: bool = False


def _single(axle: int, prefix: str, label: str, trailer: bool = False) -> tuple[SlotDefinition, ...]:
    return (
        SlotDefinition(f"{prefix}L", f"{label} Left", axle, trailer),
        SlotDefinition(f"{prefix}R", f"{label} Right", axle, trailer),
    )


def _dual(axle: int, prefix: str, label: str) -> tuple[SlotDefinition, ...]:
    return (
        SlotDefinition(f"{prefix}LO", f"{label} Left Outer", axle),
        SlotDefinition(f"{prefix}LI", f"{label} Left Inner", axle),
        SlotDefinition(f"{prefix}RI", f"{label} Right Inner", axle),
        SlotDefinition(f"{prefix}RO", f"{label} Right Outer", axle),
    )


_STEER = _single(1, "F", "Front")

POSITION_TEMPLATES: dict[WheelConfiguration, tuple[SlotDefinition, ...]] = {
    WheelConfiguration.FOUR_BY_TWO: _STEER + _single(2, "R1", "Rear 1"),
    WheelConfiguration.SIX_BY_TWO: (
        _STEER + _single(2, "R1", "Rear 1") + _single(3, "R2", "Rear 2")
    ),
    WheelConfiguration.SIX_BY_FOUR: (
        _STEER + _dual(2, "R1", "Rear 1") + _dual(3, "R2", "Rear 2")
    ),
    WheelConfiguration.TRAILER_THREE_AXLE: (
        _single(1, "T1", "Trailer 1", trailer=True)
        + _single(2, "T2", "Trailer 2", trailer=True)
        + _single(3, "T3", "Trailer 3", trailer=True)
    ),
}


def parse_configuration(value: str | WheelConfiguration) -> WheelConfiguration:
    if isinstance(value, WheelConfiguration):
        return value
    try:
        return WheelConfiguration(value)
    except ValueError:
        raise UnknownWheelConfigurationError(str(value)) from None


def slots_for(configuration: str | WheelConfiguration) -> tuple[SlotDefinition, ...]:
    """Ordered slot definitions for a configuration name or member."""
    return POSITION_TEMPLATES[parse_configuration(configuration)]
