"""
BaseService -- abstract base for all approval kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Concrete services receive a
    SQLAlchemy ``Session`` and persist through ``session.flush()`` --
    never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (``session_scope()`` or the test harness) owns commit/rollback.
    - Row versioning: a flush that loses an optimistic-lock race surfaces
      as ``OptimisticLockError``, never as a raw ``StaleDataError``.

Failure modes:
    - OptimisticLockError when a versioned row was changed by another
      transaction between load and flush.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from approval_kernel.db.base import Base
from approval_kernel.exceptions import OptimisticLockError
from approval_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - ``_flush`` translates version-counter conflicts into
          ``OptimisticLockError``.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``approval_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

    def _flush(self, entity_type: str, entity_id: str) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "optimistic_lock_conflict",
                extra={"entity_type": entity_type, "entity_id": entity_id},
            )
            raise OptimisticLockError(entity_type, entity_id) from exc
