"""
Tire ledger configuration schema.

Frozen dataclasses parsed from YAML by ``tire_config.loader``.  Each
section validates itself in ``__post_init__`` and raises ValueError on
a malformed value, so a bad file fails at load time rather than in the
middle of a lifecycle transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

VALID_REJECTION_METHODS = {"DISPOSAL", "RECYCLE", "RETURN_TO_SUPPLIER"}


@dataclass(frozen=True)
class LocationLabels:
    """Location labels written into Tire.current_location and movements."""

    warehouse: str = "MAIN_WAREHOUSE"
    supplier_intake: str = "SUPPLIER"
    disposal: str = "DISPOSAL"
    vehicle_format: str = "Vehicle-{vehicle_number}"
    retread_supplier_format: str = "RETREAD:{supplier_code}"

    def __post_init__(self):
        for name in ("warehouse", "supplier_intake", "disposal"):
            if not getattr(self, name):
                raise ValueError(f"locations.{name} must not be empty")
        if "{vehicle_number}" not in self.vehicle_format:
            raise ValueError("locations.vehicle_format must contain {vehicle_number}")
        if "{supplier_code}" not in self.retread_supplier_format:
            raise ValueError("locations.retread_supplier_format must contain {supplier_code}")

    def vehicle(self, vehicle_number: str) -> str:
        return self.vehicle_format.format(vehicle_number=vehicle_number)

    def retread_supplier(self, supplier_code: str) -> str:
        return self.retread_supplier_format.format(supplier_code=supplier_code)


@dataclass(frozen=True)
class TireCatalog:
    """Tire sizes accepted at intake and direct registration."""

    sizes: tuple[str, ...] = (
        "295/80R22.5",
        "315/80R22.5",
        "12R22.5",
        "11R22.5",
        "385/65R22.5",
    )

    def __post_init__(self):
        if not self.sizes:
            raise ValueError("catalog.sizes must list at least one size")
        if len(set(self.sizes)) != len(self.sizes):
            raise ValueError("catalog.sizes contains duplicates")

    def is_valid_size(self, size: str) -> bool:
        return size in self.sizes


@dataclass(frozen=True)
class IntakePolicy:
    grn_prefix: str = "GRN"
    purchase_order_prefix: str = "PO"
    fallback_serial_format: str = "{order}-{line:03d}-{index:03d}"
    allow_over_receipt: bool = True

    def __post_init__(self):
        if not self.grn_prefix or not self.purchase_order_prefix:
            raise ValueError("intake prefixes must not be empty")
        for placeholder in ("{order", "{line", "{index"):
            if placeholder not in self.fallback_serial_format:
                raise ValueError(
                    f"intake.fallback_serial_format must contain a {placeholder}}} field"
                )

    def fallback_serial(self, order: str, line: int, index: int) -> str:
        """Serial for a unit received without one: PO number, line, 1-based index."""
        return self.fallback_serial_format.format(order=order, line=line, index=index)


@dataclass(frozen=True)
class RetreadPolicy:
    order_prefix: str = "RTD"
    rejection_reason: str = "RETREAD REJECT"
    rejection_method: str = "DISPOSAL"
    rejection_note: str = "Rejected by retread supplier during receiving"

    def __post_init__(self):
        if not self.order_prefix:
            raise ValueError("retread.order_prefix must not be empty")
        if self.rejection_method not in VALID_REJECTION_METHODS:
            raise ValueError(
                f"retread.rejection_method must be one of {sorted(VALID_REJECTION_METHODS)}, "
                f"got '{self.rejection_method}'"
            )


@dataclass(frozen=True)
class ActorPolicy:
    """
    ``system_actor_id`` is used when a caller supplies no actor.  When it
    is None (the default) a missing actor is rejected.
    """

    system_actor_id: UUID | None = None


@dataclass(frozen=True)
class TireLedgerConfig:
    """The complete runtime configuration of the tire ledger."""

    config_id: str = "tire-ledger-default"
    version: int = 1
    locations: LocationLabels = field(default_factory=LocationLabels)
    catalog: TireCatalog = field(default_factory=TireCatalog)
    intake: IntakePolicy = field(default_factory=IntakePolicy)
    retread: RetreadPolicy = field(default_factory=RetreadPolicy)
    actors: ActorPolicy = field(default_factory=ActorPolicy)
    checksum: str = ""

    def __post_init__(self):
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")
