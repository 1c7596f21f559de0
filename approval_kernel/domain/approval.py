"""
Approval domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the approval engine: the request/step lifecycle
state machine, state-change event actions, frozen snapshots of requests
and steps, and the statistics result.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` defines the only valid status transitions for
  both requests and steps.  Terminal states have no outgoing edges.
* A step is *current* iff it is pending AND has been assigned.
* ``ApprovalRequestSnapshot.steps`` is ordered by ``step_number``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from approval_kernel.domain.approvable import ApprovableRef
from approval_kernel.domain.durations import hours_between, humanize_duration


# =========================================================================
# Lifecycle
# =========================================================================


class ApprovalStatus(str, Enum):
    """Lifecycle states shared by approval requests and approval steps."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.CANCELLED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
    ApprovalStatus.CANCELLED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
    ApprovalStatus.CANCELLED,
})

# Steps that count toward progress (cancelled steps never do).
DECIDED_STEP_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


def can_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    return target in APPROVAL_TRANSITIONS.get(current, frozenset())


class ApprovalEventAction(str, Enum):
    """State changes published to the ``approval_events`` table."""

    REQUESTED = "requested"
    STEP_ASSIGNED = "step_assigned"
    STEP_APPROVED = "step_approved"
    STEP_REJECTED = "step_rejected"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# =========================================================================
# Snapshots
# =========================================================================


@dataclass(frozen=True)
class ApprovalStepSnapshot:
    """Immutable view of one approval step."""

    step_id: UUID
    request_id: UUID
    step_number: int
    step_name: str
    status: ApprovalStatus
    approver_id: UUID | None = None
    decided_by: UUID | None = None
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    comments: str | None = None
    step_data: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == ApprovalStatus.APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == ApprovalStatus.REJECTED

    @property
    def is_current(self) -> bool:
        return self.is_pending and self.assigned_at is not None

    @property
    def processing_time_in_hours(self) -> float | None:
        """Hours from assignment to completion; None if either is missing."""
        return hours_between(self.assigned_at, self.completed_at)

    def elapsed_time(self, now: datetime) -> str | None:
        """Human-readable time since assignment (until completion, if done)."""
        if self.assigned_at is None:
            return None
        return humanize_duration((self.completed_at or now) - self.assigned_at)


@dataclass(frozen=True)
class ApprovalRequestSnapshot:
    """Immutable view of an approval request and its ordered steps."""

    request_id: UUID
    workflow_id: UUID
    approvable_type: str
    approvable_id: str
    status: ApprovalStatus
    requested_by: UUID
    requested_at: datetime
    completed_at: datetime | None = None
    notes: str | None = None
    current_step_data: dict[str, Any] | None = field(default=None, hash=False)
    steps: tuple[ApprovalStepSnapshot, ...] = ()

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES

    @property
    def approvable(self) -> ApprovableRef:
        return ApprovableRef(self.approvable_type, self.approvable_id)

    def elapsed(self, now: datetime) -> timedelta:
        return (self.completed_at or now) - self.requested_at

    def elapsed_time(self, now: datetime) -> str:
        """Human-readable time since the request (until completion, if done)."""
        return humanize_duration(self.elapsed(now))


# =========================================================================
# Statistics
# =========================================================================


class StatisticsPeriod(str, Enum):
    """Reporting windows for workflow statistics, keyed off ``requested_at``."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"


@dataclass(frozen=True)
class WorkflowStatistics:
    """Request counts and timing for one workflow over one period."""

    workflow_id: UUID
    period: StatisticsPeriod
    window_start: datetime | None
    window_end: datetime
    total_requests: int = 0
    pending_requests: int = 0
    approved_requests: int = 0
    rejected_requests: int = 0
    cancelled_requests: int = 0
    approval_rate: float = 0.0
    average_processing_hours: float = 0.0
