"""
Tire Kernel

The lifecycle core of the tire ledger:
- Append-only movement log
- Wheel-position occupancy invariants
- Atomic multi-row transactions with typed failures
- Supplier running balance updated in the same transaction
"""

__version__ = "0.1.0"
