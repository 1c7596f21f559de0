"""
Module: approval_kernel.models.approval
Responsibility: ORM persistence for approval requests and their steps.

Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain types it converts to.

Invariants enforced:
    - Status values limited by DB check constraints; transition rules are
      enforced by ApprovalService and, for terminal states, by the
      before_update listeners below.
    - UNIQUE(request_id, step_number): one step per number per request.
    - Requests and steps are never deleted (audit trail retained).
    - ``version`` is the SQLAlchemy version counter: a flush that races
      another transaction on the same row raises StaleDataError, which the
      service reports as OptimisticLockError.

Failure modes:
    - IntegrityError on a duplicate step number.
    - ImmutabilityViolationError on DELETE, or on changing the status of a
      row that is already terminal.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.domain.approval import (
    TERMINAL_APPROVAL_STATUSES,
    ApprovalRequestSnapshot,
    ApprovalStatus,
    ApprovalStepSnapshot,
)
from approval_kernel.exceptions import ImmutabilityViolationError

_VALID_STATUS_SQL = "status IN ('pending', 'approved', 'rejected', 'cancelled')"


class ApprovalRequestModel(Base):
    """Persistent approval request for one approvable item."""

    __tablename__ = "approval_requests"

    __table_args__ = (
        CheckConstraint(_VALID_STATUS_SQL, name="ck_approval_requests_valid_status"),
        Index(
            "ix_approval_requests_approvable",
            "approvable_type", "approvable_id", "status",
        ),
        Index("ix_approval_requests_workflow_requested", "workflow_id", "requested_at"),
        Index("ix_approval_requests_status", "status"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    workflow_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_workflows.workflow_id"),
        nullable=False,
    )
    approvable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    approvable_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_step_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    steps: Mapped[list["ApprovalStepModel"]] = relationship(
        "ApprovalStepModel",
        back_populates="request",
        order_by="ApprovalStepModel.step_number",
        lazy="selectin",
        passive_deletes="all",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.request_id} "
            f"{self.approvable_type}:{self.approvable_id} status={self.status}>"
        )

    def to_dto(self) -> ApprovalRequestSnapshot:
        """Convert ORM model to frozen domain snapshot."""
        return ApprovalRequestSnapshot(
            request_id=self.request_id,
            workflow_id=self.workflow_id,
            approvable_type=self.approvable_type,
            approvable_id=self.approvable_id,
            status=ApprovalStatus(self.status),
            requested_by=self.requested_by,
            requested_at=self.requested_at,
            completed_at=self.completed_at,
            notes=self.notes,
            current_step_data=self.current_step_data,
            steps=tuple(s.to_dto() for s in self.steps),
        )


class ApprovalStepModel(Base):
    """Persistent approval step.  Mutated exactly once to a terminal status."""

    __tablename__ = "approval_steps"

    __table_args__ = (
        CheckConstraint(_VALID_STATUS_SQL, name="ck_approval_steps_valid_status"),
        CheckConstraint("step_number >= 1", name="ck_approval_steps_positive_number"),
        UniqueConstraint(
            "request_id", "step_number",
            name="uq_approval_steps_request_number",
        ),
        Index("ix_approval_steps_approver_status", "approver_id", "status"),
    )

    step_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id"),
        nullable=False,
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    decided_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    step_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    request: Mapped["ApprovalRequestModel"] = relationship(
        "ApprovalRequestModel",
        back_populates="steps",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<ApprovalStep {self.request_id}#{self.step_number} "
            f"{self.step_name} status={self.status}>"
        )

    def to_dto(self) -> ApprovalStepSnapshot:
        """Convert ORM model to frozen domain snapshot."""
        return ApprovalStepSnapshot(
            step_id=self.step_id,
            request_id=self.request_id,
            step_number=self.step_number,
            step_name=self.step_name,
            status=ApprovalStatus(self.status),
            approver_id=self.approver_id,
            decided_by=self.decided_by,
            assigned_at=self.assigned_at,
            completed_at=self.completed_at,
            comments=self.comments,
            step_data=dict(self.step_data or {}),
        )


# =============================================================================
# ORM-level lifecycle protection
# =============================================================================


def _terminal_status_changed(target) -> bool:
    history = inspect(target).attrs.status.history
    if not history.deleted:
        return False
    return ApprovalStatus(history.deleted[0]) in TERMINAL_APPROVAL_STATUSES


@event.listens_for(ApprovalRequestModel, "before_update")
def prevent_terminal_request_update(mapper, connection, target):
    """A resolved request never changes status again."""
    if _terminal_status_changed(target):
        raise ImmutabilityViolationError(
            entity_type="ApprovalRequest",
            entity_id=str(target.request_id),
            reason="Request status is terminal -- cannot change",
        )


@event.listens_for(ApprovalStepModel, "before_update")
def prevent_terminal_step_update(mapper, connection, target):
    """A decided or cancelled step never changes status again."""
    if _terminal_status_changed(target):
        raise ImmutabilityViolationError(
            entity_type="ApprovalStep",
            entity_id=str(target.step_id),
            reason="Step status is terminal -- cannot change",
        )


@event.listens_for(ApprovalRequestModel, "before_delete")
def prevent_request_delete(mapper, connection, target):
    """Requests are retained for the audit trail."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalRequest",
        entity_id=str(target.request_id),
        reason="Approval requests are never deleted",
    )


@event.listens_for(ApprovalStepModel, "before_delete")
def prevent_step_delete(mapper, connection, target):
    """Steps are retained for the audit trail."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalStep",
        entity_id=str(target.step_id),
        reason="Approval steps are never deleted",
    )
