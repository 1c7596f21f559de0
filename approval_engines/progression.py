"""
approval_engines.progression -- Pure step progression rules.

Responsibility:
    Derive the current and next step, progress, and approver authority from
    a request's step collection.  The "current step" is never stored: it is
    recomputed from the steps every time, so there is no second source of
    truth to drift out of sync.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Works on anything shaped like a step (ORM rows or domain snapshots).

Invariants enforced:
    - The current step is the lowest-numbered pending step, and only if it
      has been assigned.  Terminal requests therefore have no current step:
      a rejection leaves later steps pending but unassigned.
    - At most one step is pending AND assigned (``has_single_current_step``).
    - Progress counts approved and rejected steps only, rounded half-up.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Protocol, Sequence
from uuid import UUID

from approval_kernel.domain.approval import DECIDED_STEP_STATUSES, ApprovalStatus


class StepLike(Protocol):
    step_number: int
    step_name: str
    status: Any
    approver_id: UUID | None
    assigned_at: datetime | None
    step_data: Any


def _ordered(steps: Iterable[StepLike]) -> list[StepLike]:
    return sorted(steps, key=lambda s: s.step_number)


def _is_pending(step: StepLike) -> bool:
    return ApprovalStatus(step.status) == ApprovalStatus.PENDING


def current_step(steps: Iterable[StepLike]) -> StepLike | None:
    """The lowest-numbered pending step, if it has been assigned."""
    for step in _ordered(steps):
        if _is_pending(step):
            return step if step.assigned_at is not None else None
    return None


def next_step(steps: Iterable[StepLike]) -> StepLike | None:
    """The step after the current one, or None if there is no current step."""
    ordered = _ordered(steps)
    current = current_step(ordered)
    if current is None:
        return None
    for step in ordered:
        if step.step_number > current.step_number:
            return step
    return None


def progress_percentage(steps: Sequence[StepLike]) -> int:
    """``round(100 * decided / total)``; 0 when there are no steps."""
    total = len(steps)
    if total == 0:
        return 0
    decided = sum(
        1 for s in steps if ApprovalStatus(s.status) in DECIDED_STEP_STATUSES
    )
    percentage = Decimal(decided * 100) / Decimal(total)
    return int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_authorized(step: StepLike, actor_id: UUID) -> bool:
    """A step without a fixed approver is open to any authorized user."""
    return step.approver_id is None or step.approver_id == actor_id


def can_be_approved_by(steps: Iterable[StepLike], user_id: UUID) -> bool:
    step = current_step(steps)
    return step is not None and is_authorized(step, user_id)


def has_single_current_step(steps: Iterable[StepLike]) -> bool:
    """At most one step is pending and assigned."""
    current = [s for s in steps if _is_pending(s) and s.assigned_at is not None]
    return len(current) <= 1


def current_step_data(step: StepLike | None) -> dict[str, Any] | None:
    """JSON snapshot of the current step for ``current_step_data``."""
    if step is None:
        return None
    return {
        "step_number": step.step_number,
        "step_name": step.step_name,
        "approver_id": str(step.approver_id) if step.approver_id else None,
        "assigned_at": step.assigned_at.isoformat() if step.assigned_at else None,
        "step_data": dict(step.step_data or {}),
    }
