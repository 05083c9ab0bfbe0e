"""
Fleet Module (``tire_modules.fleet``).

Vehicles with their fixed wheel positions, and suppliers with their
running balance.  The reference data every lifecycle operation checks
against.
"""

from tire_modules.fleet.service import FleetService

__all__ = ["FleetService"]
