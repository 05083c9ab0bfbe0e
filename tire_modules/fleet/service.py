"""
Fleet Module Service (``tire_modules.fleet.service``).

Responsibility
--------------
Registers the two reference aggregates every tire operation points at:
vehicles (with their wheel positions) and suppliers (with their running
balance).  Thin transaction-owning wrapper over the kernel
``PositionRegistry`` and ``SupplierLedger``.

Invariants
----------
- Each public method owns its transaction boundary through
  ``tire_kernel.db.engine.transaction``.
- Wheel positions are generated once, from the closed configuration
  registry, in the same transaction that creates the vehicle.
- Payments go through the same supplier-ledger hook as purchase and
  retread charges.

Usage::

    fleet = FleetService(session, clock)
    truck = fleet.register_vehicle("KBX 123A", "6x4", actor_id=actor_id)
    fleet.get_position(truck.id, "R1LO")
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.db.engine import transaction
from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.dtos import LedgerEntryInfo, SupplierInfo, VehicleInfo, WheelPositionInfo
from tire_kernel.domain.values import LedgerEntryKind, SupplierType
from tire_kernel.exceptions import InvalidQuantityError
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.services.position_registry import PositionRegistry
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_modules._helpers import resolve_actor, resolve_config

logger = get_logger("modules.fleet.service")


class FleetService:
    """Vehicles, wheel positions and suppliers."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TireLedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = resolve_config(config)
        self._positions = PositionRegistry(session)
        self._suppliers = SupplierLedger(session)

    # =========================================================================
    # Vehicles
    # =========================================================================

    def register_vehicle(
        self,
        vehicle_number: str,
        configuration: str,
        actor_id: UUID | None,
        make: str | None = None,
        model: str | None = None,
        year: int | None = None,
    ) -> VehicleInfo:
        """
        Register a vehicle and materialise its wheel positions.

        Raises:
            UnknownWheelConfigurationError: configuration not registered.
            ValidationError: blank or duplicate vehicle number, no actor.
        """
        actor = resolve_actor(actor_id, "register_vehicle", self._config)
        with LogContext.bind(operation="register_vehicle", actor_id=actor):
            with transaction(self._session, "register_vehicle"):
                vehicle = self._positions.create_vehicle(
                    vehicle_number=vehicle_number,
                    configuration=configuration,
                    actor_id=actor,
                    make=make,
                    model=model,
                    year=year,
                )
                info = vehicle.to_dto()
        return info

    def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo:
        return self._positions.get_vehicle(vehicle_id).to_dto()

    def get_position(self, vehicle_id: UUID, position_code: str) -> WheelPositionInfo:
        """
        Raises:
            VehicleNotFoundError: unknown vehicle.
            PositionNotFoundError: the vehicle has no slot ``position_code``.
        """
        self._positions.get_vehicle(vehicle_id)
        return self._positions.resolve_position(vehicle_id, position_code).to_dto()

    def retire_vehicle(
        self,
        vehicle_id: UUID,
        actor_id: UUID | None,
        retired_on: date | None = None,
    ) -> VehicleInfo:
        actor = resolve_actor(actor_id, "retire_vehicle", self._config)
        with LogContext.bind(operation="retire_vehicle", actor_id=actor, vehicle_id=vehicle_id):
            with transaction(self._session, "retire_vehicle"):
                vehicle = self._positions.retire_vehicle(
                    vehicle_id, actor, retired_on or self._clock.today()
                )
                info = vehicle.to_dto()
        return info

    # =========================================================================
    # Suppliers
    # =========================================================================

    def register_supplier(
        self,
        code: str,
        name: str,
        supplier_type: SupplierType,
        actor_id: UUID | None,
        contact_person: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> SupplierInfo:
        actor = resolve_actor(actor_id, "register_supplier", self._config)
        with LogContext.bind(operation="register_supplier", actor_id=actor):
            with transaction(self._session, "register_supplier"):
                supplier = self._suppliers.create_supplier(
                    code=code,
                    name=name,
                    supplier_type=supplier_type,
                    actor_id=actor,
                    contact_person=contact_person,
                    phone=phone,
                    email=email,
                )
                info = supplier.to_dto()
        return info

    def record_supplier_payment(
        self,
        supplier_id: UUID,
        amount: Decimal,
        actor_id: UUID | None,
        payment_date: date | None = None,
        reference: str | None = None,
        description: str | None = None,
    ) -> LedgerEntryInfo:
        """
        Record a payment to a supplier; reduces the running balance.

        Raises:
            InvalidQuantityError: amount not positive.
            SupplierNotFoundError: unknown supplier.
        """
        actor = resolve_actor(actor_id, "record_supplier_payment", self._config)
        with LogContext.bind(operation="record_supplier_payment", actor_id=actor):
            with transaction(self._session, "record_supplier_payment"):
                if Decimal(amount) <= 0:
                    raise InvalidQuantityError("amount", amount)
                entry = self._suppliers.append_charge(
                    supplier_id=supplier_id,
                    entry_date=payment_date or self._clock.today(),
                    description=description or "Payment",
                    kind=LedgerEntryKind.PAYMENT,
                    amount=Decimal(amount),
                    reference=reference,
                    actor_id=actor,
                )
                info = entry.to_dto()
        logger.info(
            "supplier_payment_recorded",
            extra={"supplier_id": str(supplier_id), "amount": info.amount},
        )
        return info
