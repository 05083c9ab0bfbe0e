"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session contract for kernel services.  Kernel
    services receive a SQLAlchemy ``Session`` and only ``flush()``; the
    module service that called them owns commit/rollback through
    ``tire_kernel.db.engine.transaction``.

Invariants enforced:
    - Kernel services never commit or roll back, so a Movement Log append
      or a supplier charge always shares the caller's transaction.
    - Every mutating call is attributed to an actor (``require_actor``).
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_kernel.db.base import Base
from tire_kernel.exceptions import MissingActorError

ModelType = TypeVar("ModelType", bound=Base)


def load_for_update(session: Session, model: type[ModelType], entity_id: UUID) -> ModelType | None:
    """
    Load one row under ``SELECT ... FOR UPDATE``, refreshing the identity map.

    ``populate_existing`` makes a precondition check see the state the
    lock was granted on, not a copy cached earlier in the session.
    """
    stmt = (
        select(model)
        .where(model.id == entity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).scalar_one_or_none()


def require_actor(
    actor_id: UUID | None,
    operation: str,
    system_actor_id: UUID | None = None,
) -> UUID:
    """
    Return the actor for a mutating operation.

    A missing actor falls back to ``system_actor_id`` only when a system
    actor has been configured; otherwise it is a validation failure.
    """
    if actor_id is not None:
        return actor_id
    if system_actor_id is not None:
        return system_actor_id
    raise MissingActorError(operation)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only queries returning DTOs live in ``tire_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session
