"""
approval_engines.statistics -- Pure workflow reporting aggregation.

Responsibility:
    Turn a list of request rows (status + timestamps) into a
    ``WorkflowStatistics`` summary.  The selector does the querying; this
    module only counts and averages.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is always passed
    in; windows are rolling and end at ``as_of``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable
from uuid import UUID

from approval_kernel.domain.approval import (
    ApprovalStatus,
    StatisticsPeriod,
    WorkflowStatistics,
)
from approval_kernel.domain.durations import hours_between

PERIOD_LENGTHS: dict[StatisticsPeriod, timedelta] = {
    StatisticsPeriod.DAY: timedelta(days=1),
    StatisticsPeriod.WEEK: timedelta(days=7),
    StatisticsPeriod.MONTH: timedelta(days=30),
    StatisticsPeriod.QUARTER: timedelta(days=90),
    StatisticsPeriod.YEAR: timedelta(days=365),
}


@dataclass(frozen=True)
class RequestTiming:
    """The slice of a request that statistics need."""

    status: ApprovalStatus
    requested_at: datetime
    completed_at: datetime | None = None


def period_window_start(period: StatisticsPeriod, as_of: datetime) -> datetime | None:
    """Start of the rolling window ending at ``as_of``; None for ALL."""
    length = PERIOD_LENGTHS.get(period)
    if length is None:
        return None
    return as_of - length


def compute_statistics(
    workflow_id: UUID,
    period: StatisticsPeriod,
    as_of: datetime,
    requests: Iterable[RequestTiming],
) -> WorkflowStatistics:
    """Aggregate request timings already filtered to the window.

    - approval_rate = approved / total * 100 (0 when total is 0), 2 places.
    - average_processing_hours = mean over approved+rejected requests with
      a completion timestamp (0 when none), 2 places.
    """
    counts = {status: 0 for status in ApprovalStatus}
    processing_hours: list[float] = []

    for row in requests:
        status = ApprovalStatus(row.status)
        counts[status] += 1
        if status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            hours = hours_between(row.requested_at, row.completed_at)
            if hours is not None:
                processing_hours.append(hours)

    total = sum(counts.values())
    approved = counts[ApprovalStatus.APPROVED]
    approval_rate = round(approved / total * 100, 2) if total else 0.0
    average_hours = (
        round(sum(processing_hours) / len(processing_hours), 2)
        if processing_hours
        else 0.0
    )

    return WorkflowStatistics(
        workflow_id=workflow_id,
        period=period,
        window_start=period_window_start(period, as_of),
        window_end=as_of,
        total_requests=total,
        pending_requests=counts[ApprovalStatus.PENDING],
        approved_requests=approved,
        rejected_requests=counts[ApprovalStatus.REJECTED],
        cancelled_requests=counts[ApprovalStatus.CANCELLED],
        approval_rate=approval_rate,
        average_processing_hours=average_hours,
    )
