"""
Assignment Module.

Install and remove: the only operations that open or close tire
assignments, and so the owners of the wheel-position occupancy invariant.
"""

from tire_modules.assignment.models import InstallResult, RemovalResult
from tire_modules.assignment.service import AssignmentService

__all__ = [
    "AssignmentService",
    "InstallResult",
    "RemovalResult",
]
