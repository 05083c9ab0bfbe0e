"""
Assignment Domain Models.

Results of install and remove.  ``InstallResult.superseded`` is set when
the installation closed another tire's open assignment at the same
position.
"""

from __future__ import annotations

from dataclasses import dataclass

from tire_kernel.domain.dtos import AssignmentInfo, TireInfo


@dataclass(frozen=True)
class InstallResult:
    assignment: AssignmentInfo
    tire: TireInfo
    superseded: AssignmentInfo | None = None
    superseded_tire: TireInfo | None = None

    @property
    def replaced_tire(self) -> bool:
        return self.superseded is not None


@dataclass(frozen=True)
class RemovalResult:
    assignment: AssignmentInfo
    tire: TireInfo
