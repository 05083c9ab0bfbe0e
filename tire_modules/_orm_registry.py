"""
Module ORM Registry (``tire_modules._orm_registry``).

Ensures every SQLAlchemy model is imported so that ``Base.metadata``
holds the full schema before ``create_tables()`` runs.  Kernel tables
are registered first; module tables reference them by foreign key.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``tire_modules.*.orm`` module (idempotent)."""
    import tire_kernel.models  # noqa: F401
    import tire_modules.intake.orm  # noqa: F401
    import tire_modules.retread.orm  # noqa: F401
