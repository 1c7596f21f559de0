"""
Module: approval_kernel.models.approval_event
Responsibility: ORM persistence for approval state-change events.

Architecture position: Kernel > Models.  May import from db/base.py only
    (plus the ImmutabilityViolationError it raises).

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners below).
    - ``sequence`` numbers a request's events 1, 2, 3... in write order;
      UNIQUE(request_id, sequence).
    - One row per state change, written in the same flush as the change it
      describes, so notification consumers never see an event for a
      rolled-back decision.

Audit relevance:
    This table IS the approval history that notification and UI layers
    consume (who requested, who approved which step, when it finalized).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError


class ApprovalEventModel(Base):
    """Persistent approval state-change event.  Append-only."""

    __tablename__ = "approval_events"

    __table_args__ = (
        UniqueConstraint("request_id", "sequence", name="uq_approval_events_request_sequence"),
        Index("ix_approval_events_action", "action"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    step_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalEvent {self.action} request={self.request_id} "
            f"step={self.step_number}>"
        )


@event.listens_for(ApprovalEventModel, "before_update")
def prevent_event_update(mapper, connection, target):
    """Prevent updates to approval event records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalEvent",
        entity_id=str(target.event_id),
        reason="Approval events are immutable -- cannot modify",
    )


@event.listens_for(ApprovalEventModel, "before_delete")
def prevent_event_delete(mapper, connection, target):
    """Prevent deletion of approval event records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalEvent",
        entity_id=str(target.event_id),
        reason="Approval events are immutable -- cannot delete",
    )
