"""
Module: approval_kernel.selectors.approval_selector
Responsibility: Read-only queries over approval requests and their event
    history: pending work lists, per-approver inboxes, per-item history.
Architecture position: Kernel > Selectors.  May import from models/, domain
    snapshots and selectors/base.py.

Invariants enforced:
    - Read-only: No mutations performed on any queried data.
    - Results are ordered deterministically (requested_at, request_id for
      requests; per-request sequence for events).
    - ``approvable_by`` only considers the current step (pending and
      assigned); later steps never put a request in a user's inbox.

Failure modes:
    - Returns an empty list when nothing matches (never raises on absence).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from approval_kernel.domain.approval import (
    ApprovalEventAction,
    ApprovalRequestSnapshot,
    ApprovalStatus,
)
from approval_kernel.models.approval import ApprovalRequestModel, ApprovalStepModel
from approval_kernel.models.approval_event import ApprovalEventModel
from approval_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ApprovalEventDTO:
    """One approval state change, as published to notification consumers."""

    event_id: UUID
    request_id: UUID
    action: ApprovalEventAction
    actor_id: UUID | None
    step_number: int | None
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict, hash=False)


class ApprovalSelector(BaseSelector[ApprovalRequestModel]):
    """
    Selector for approval request queries.

    Contract:
        All request queries return ``ApprovalRequestSnapshot`` lists with
        steps ordered by step_number.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def pending_requests(
        self,
        approvable_type: str | None = None,
    ) -> list[ApprovalRequestSnapshot]:
        stmt = select(ApprovalRequestModel).where(
            ApprovalRequestModel.status == ApprovalStatus.PENDING.value,
        )
        if approvable_type is not None:
            stmt = stmt.where(
                ApprovalRequestModel.approvable_type == approvable_type.lower(),
            )
        return self._fetch(stmt)

    def approvable_by(self, user_id: UUID) -> list[ApprovalRequestSnapshot]:
        """Pending requests whose current step this user may decide."""
        stmt = (
            select(ApprovalRequestModel)
            .join(
                ApprovalStepModel,
                ApprovalStepModel.request_id == ApprovalRequestModel.request_id,
            )
            .where(
                ApprovalRequestModel.status == ApprovalStatus.PENDING.value,
                ApprovalStepModel.status == ApprovalStatus.PENDING.value,
                ApprovalStepModel.assigned_at.is_not(None),
                or_(
                    ApprovalStepModel.approver_id == user_id,
                    ApprovalStepModel.approver_id.is_(None),
                ),
            )
        )
        return self._fetch(stmt)

    def requests_for_item(
        self,
        approvable_type: str,
        approvable_id: str,
    ) -> list[ApprovalRequestSnapshot]:
        """Every request ever raised for one item, oldest first."""
        stmt = select(ApprovalRequestModel).where(
            ApprovalRequestModel.approvable_type == approvable_type.lower(),
            ApprovalRequestModel.approvable_id == str(approvable_id),
        )
        return self._fetch(stmt)

    def get_events(self, request_id: UUID) -> list[ApprovalEventDTO]:
        """Event history for a request in the order it happened."""
        models = self.session.execute(
            select(ApprovalEventModel)
            .where(ApprovalEventModel.request_id == request_id)
            .order_by(ApprovalEventModel.sequence)
        ).scalars().all()

        return [
            ApprovalEventDTO(
                event_id=m.event_id,
                request_id=m.request_id,
                action=ApprovalEventAction(m.action),
                actor_id=m.actor_id,
                step_number=m.step_number,
                occurred_at=m.occurred_at,
                payload=dict(m.payload or {}),
            )
            for m in models
        ]

    def _fetch(self, stmt) -> list[ApprovalRequestSnapshot]:
        stmt = stmt.order_by(
            ApprovalRequestModel.requested_at,
            ApprovalRequestModel.request_id,
        )
        models = self.session.execute(stmt).scalars().unique().all()
        return [m.to_dto() for m in models]
