"""
Helpers shared by module services.

Document numbering and the actor/config resolution every public
operation starts with.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig, get_active_config
from tire_kernel.services.base import require_actor


def resolve_config(config: TireLedgerConfig | None) -> TireLedgerConfig:
    return config if config is not None else get_active_config()


def resolve_actor(actor_id: UUID | None, operation: str, config: TireLedgerConfig) -> UUID:
    return require_actor(actor_id, operation, config.actors.system_actor_id)


def document_number(session: Session, column, prefix: str, period: str) -> str:
    """
    Next ``{prefix}-{period}-{seq:04d}`` number for a document table.

    The sequence continues from the highest number already used in the
    period, so a deleted draft never frees a number still held by a later
    document.  The column carries a unique constraint, so two writers
    drawing the same number fail at flush instead of sharing it.
    """
    stem = f"{prefix}-{period}-"
    used = session.execute(select(column).where(column.like(f"{stem}%"))).scalars()
    highest = max(
        (int(number[len(stem):]) for number in used if number[len(stem):].isdigit()),
        default=0,
    )
    return f"{stem}{highest + 1:04d}"
