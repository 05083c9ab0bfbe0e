"""
Tire Lifecycle Domain Models.

Results of bulk lifecycle operations.  Bulk disposal and bulk retread
queueing process each tire in its own transaction and report one
``TireOutcome`` per requested tire, in request order.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from tire_kernel.domain.dtos import TireInfo


@dataclass(frozen=True)
class TireOutcome:
    """Per-tire result of a bulk operation: either a tire or an error."""
    tire_id: UUID
    tire: TireInfo | None = None
    error_code: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class BulkTireResult:
    outcomes: tuple[TireOutcome, ...] = ()

    @property
    def succeeded(self) -> tuple[TireOutcome, ...]:
        return tuple(o for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> tuple[TireOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class BulkDisposalResult(BulkTireResult):
    """Outcome list of ``dispose_many``."""


class BulkRetreadQueueResult(BulkTireResult):
    """Outcome list of ``mark_for_retread``."""
