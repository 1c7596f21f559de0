"""
Module: approval_kernel.selectors.workflow_selector
Responsibility: Read-only reporting over a workflow's requests.
Architecture position: Kernel > Selectors.  Queries ``approval_requests``
    and hands the rows to ``approval_engines.statistics`` for aggregation.

Invariants enforced:
    - Windows are rolling and end at the caller-supplied ``as_of``; the
      selector never reads the wall clock.
    - A request belongs to a window by its ``requested_at``.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.statistics import (
    RequestTiming,
    compute_statistics,
    period_window_start,
)
from approval_kernel.domain.approval import (
    ApprovalStatus,
    StatisticsPeriod,
    WorkflowStatistics,
)
from approval_kernel.models.approval import ApprovalRequestModel
from approval_kernel.models.workflow import ApprovalWorkflowModel
from approval_kernel.selectors.base import BaseSelector


class WorkflowSelector(BaseSelector[ApprovalWorkflowModel]):
    """Selector for workflow-level reporting."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get_statistics(
        self,
        workflow_id: UUID,
        period: StatisticsPeriod | str,
        as_of: datetime,
    ) -> WorkflowStatistics:
        """Request counts, approval rate and mean processing time.

        An unknown workflow yields all-zero statistics.
        """
        period = StatisticsPeriod(period)
        stmt = select(
            ApprovalRequestModel.status,
            ApprovalRequestModel.requested_at,
            ApprovalRequestModel.completed_at,
        ).where(
            ApprovalRequestModel.workflow_id == workflow_id,
            ApprovalRequestModel.requested_at <= as_of,
        )
        window_start = period_window_start(period, as_of)
        if window_start is not None:
            stmt = stmt.where(ApprovalRequestModel.requested_at >= window_start)

        rows = self.session.execute(stmt).all()
        return compute_statistics(
            workflow_id,
            period,
            as_of,
            [
                RequestTiming(
                    status=ApprovalStatus(status),
                    requested_at=requested_at,
                    completed_at=completed_at,
                )
                for status, requested_at, completed_at in rows
            ],
        )
