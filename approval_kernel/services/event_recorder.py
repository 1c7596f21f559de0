"""
ApprovalEventRecorder -- append-only approval history.

Responsibility:
    Writes one ``ApprovalEventModel`` row per approval state change
    (request created, step assigned, step decided, request finalized or
    cancelled).  Notification and UI layers read these rows through
    ``ApprovalSelector.get_events``.

Architecture position:
    Kernel > Services.  Called only by ApprovalService, inside the same
    flush as the change being recorded.

Invariants enforced:
    - Append-only: rows are never updated or deleted (ORM listeners on
      the model).
    - Timestamps come from the injected Clock.
    - Events of one request are numbered 1, 2, 3... in write order.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from approval_kernel.domain.approval import ApprovalEventAction
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.logging_config import get_logger
from approval_kernel.models.approval_event import ApprovalEventModel

logger = get_logger("services.event_recorder")


class ApprovalEventRecorder:
    """
    Creates approval event rows.

    Contract:
        ``record()`` adds one event to the session; the caller flushes.

    Non-goals:
        - Does NOT deliver notifications; consumers poll or subscribe to
          the table themselves.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def record(
        self,
        request_id: UUID,
        action: ApprovalEventAction,
        actor_id: UUID | None = None,
        step_number: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> ApprovalEventModel:
        event = ApprovalEventModel(
            event_id=uuid4(),
            request_id=request_id,
            sequence=self._next_sequence(request_id),
            action=action.value,
            actor_id=actor_id,
            step_number=step_number,
            occurred_at=self._clock.now(),
            payload=payload,
        )
        self._session.add(event)

        logger.debug(
            "approval_event_recorded",
            extra={
                "request_id": str(request_id),
                "action": action.value,
                "step_number": step_number,
            },
        )
        return event

    def _next_sequence(self, request_id: UUID) -> int:
        # autoflush makes events added earlier in this operation visible
        last = self._session.execute(
            select(func.max(ApprovalEventModel.sequence)).where(
                ApprovalEventModel.request_id == request_id,
            )
        ).scalar_one()
        return (last or 0) + 1
