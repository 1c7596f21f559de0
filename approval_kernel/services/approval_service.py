"""
approval_kernel.services.approval_service -- Approval request lifecycle.

Responsibility:
    Creates approval requests from workflow definitions, records approve /
    reject decisions on the current step, cancels pending requests, and
    notifies the approvable item of its final status through the injected
    StatusMapperRegistry.  Delegates step progression rules to the pure
    ``approval_engines.progression`` module.

Architecture position:
    Kernel > Services.  May import from domain/, models/, engines, db/.

Invariants enforced:
    - Lifecycle state machine (``APPROVAL_TRANSITIONS``) checked before
      every status change; terminal requests are never mutated.
    - All steps are created with the request; only step 1 is assigned.
      Later steps are assigned exactly when they become current.
    - At most one current step (pending and assigned) per request.
    - Step write, request write, cascades, events and status hook run in
      one flush of the caller's transaction.
    - Concurrent decisions on the same step: the version counter makes the
      loser's flush fail with OptimisticLockError.

Failure modes:
    - ApprovalRequestNotFoundError if request_id is unknown.
    - NoPendingStepError when approving/rejecting with no current step.
    - UnauthorizedApproverError when the actor is not the fixed approver.
    - ApprovalAlreadyResolvedError on cancelling a terminal request.
    - WorkflowConfigurationError / InactiveWorkflowError at creation.
    - OptimisticLockError on a lost version race.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.progression import (
    can_be_approved_by,
    current_step,
    current_step_data,
    is_authorized,
    next_step,
    progress_percentage,
)
from approval_kernel.domain.approvable import (
    ApprovableItem,
    ApprovableRef,
    StatusMapperRegistry,
)
from approval_kernel.domain.approval import (
    ApprovalEventAction,
    ApprovalRequestSnapshot,
    ApprovalStatus,
    ApprovalStepSnapshot,
    can_transition,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.workflow import WorkflowDefinition
from approval_kernel.exceptions import (
    ApprovalAlreadyResolvedError,
    ApprovalRequestNotFoundError,
    InactiveWorkflowError,
    InvalidApprovalTransitionError,
    NoPendingStepError,
    UnauthorizedApproverError,
    WorkflowConfigurationError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.models.approval import ApprovalRequestModel, ApprovalStepModel
from approval_kernel.services.base import BaseService
from approval_kernel.services.event_recorder import ApprovalEventRecorder
from approval_kernel.services.workflow_resolver import WorkflowResolver

logger = get_logger("services.approval")


class ApprovalService(BaseService[ApprovalRequestModel]):
    """
    Manages approval request and step lifecycle.

    Contract:
        Every mutating method loads the request, validates the transition,
        writes steps and request, records events, flushes, and returns a
        fresh ``ApprovalRequestSnapshot``.

    Guarantees:
        - The current step is always derived from the step rows, never
          stored independently.  ``current_step_data`` is a denormalized
          copy refreshed on every mutation.
        - Status mappers run only on finalization (approved or rejected),
          never on cancellation.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT send notifications; it writes ``approval_events`` rows.
    """

    def __init__(
        self,
        session: Session,
        status_mappers: StatusMapperRegistry | None = None,
        clock: Clock | None = None,
        resolver: WorkflowResolver | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._status_mappers = status_mappers or StatusMapperRegistry()
        self._resolver = resolver or WorkflowResolver(session)
        self._events = ApprovalEventRecorder(session, self._clock)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_request(
        self,
        definition: WorkflowDefinition,
        item: ApprovableItem,
        requested_by: UUID,
        notes: str | None = None,
    ) -> ApprovalRequestSnapshot:
        """Instantiate a pending request with one step per template."""
        if not definition.steps:
            raise WorkflowConfigurationError(
                definition.name, ["Workflow has no steps"],
            )
        if not definition.is_active:
            raise InactiveWorkflowError(str(definition.workflow_id), definition.name)

        request_id = uuid4()
        now = self._clock.now()

        with LogContext.bind(
            request_id=str(request_id),
            actor_id=str(requested_by),
            workflow_id=str(definition.workflow_id),
        ):
            model = ApprovalRequestModel(
                request_id=request_id,
                workflow_id=definition.workflow_id,
                approvable_type=item.approvable_type.lower(),
                approvable_id=str(item.approvable_id),
                status=ApprovalStatus.PENDING.value,
                requested_by=requested_by,
                requested_at=now,
                notes=notes,
            )
            for number, template in enumerate(definition.steps, start=1):
                model.steps.append(
                    ApprovalStepModel(
                        step_id=uuid4(),
                        request_id=request_id,
                        step_number=number,
                        step_name=template.name,
                        status=ApprovalStatus.PENDING.value,
                        approver_id=template.approver_id,
                        assigned_at=now if number == 1 else None,
                        step_data=dict(template.metadata),
                    )
                )
            model.current_step_data = current_step_data(current_step(model.steps))

            self.session.add(model)
            self._flush("ApprovalRequest", str(request_id))

            self._events.record(
                request_id,
                ApprovalEventAction.REQUESTED,
                actor_id=requested_by,
                payload={
                    "workflow_id": str(definition.workflow_id),
                    "workflow_name": definition.name,
                    "approvable_type": model.approvable_type,
                    "approvable_id": model.approvable_id,
                    "step_count": len(model.steps),
                },
            )
            first = model.steps[0]
            self._events.record(
                request_id,
                ApprovalEventAction.STEP_ASSIGNED,
                step_number=first.step_number,
                payload=self._assignment_payload(first),
            )
            self._flush("ApprovalRequest", str(request_id))

            logger.info(
                "approval_request_created",
                extra={
                    "workflow_name": definition.name,
                    "approvable_type": model.approvable_type,
                    "approvable_id": model.approvable_id,
                    "step_count": len(model.steps),
                },
            )

        return model.to_dto()

    def submit_for_approval(
        self,
        item: ApprovableItem,
        requested_by: UUID,
        notes: str | None = None,
    ) -> ApprovalRequestSnapshot | None:
        """Resolve the governing workflow and create a request, if any applies."""
        definition = self._resolver.find_workflow_for_item(item)
        if definition is None:
            return None
        return self.create_request(definition, item, requested_by, notes=notes)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: UUID) -> ApprovalRequestSnapshot:
        return self._load_request_model(request_id).to_dto()

    def get_current_step(self, request_id: UUID) -> ApprovalStepSnapshot | None:
        step = current_step(self._load_request_model(request_id).steps)
        return step.to_dto() if step is not None else None

    def get_next_step(self, request_id: UUID) -> ApprovalStepSnapshot | None:
        step = next_step(self._load_request_model(request_id).steps)
        return step.to_dto() if step is not None else None

    def can_be_approved_by(self, request_id: UUID, user_id: UUID) -> bool:
        model = self._load_request_model(request_id)
        if model.status != ApprovalStatus.PENDING.value:
            return False
        return can_be_approved_by(model.steps, user_id)

    def get_progress_percentage(self, request_id: UUID) -> int:
        return progress_percentage(self._load_request_model(request_id).steps)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def approve_current_step(
        self,
        request_id: UUID,
        approver_id: UUID,
        comments: str | None = None,
    ) -> ApprovalRequestSnapshot:
        """Approve the current step; assign the next one or finalize."""
        model = self._load_request_model(request_id)

        with LogContext.bind(
            request_id=str(request_id),
            actor_id=str(approver_id),
            workflow_id=str(model.workflow_id),
        ):
            step = self._require_current_step(model, approver_id, action="approve")
            following = next_step(model.steps)
            now = self._clock.now()
            self._decide_step(step, ApprovalStatus.APPROVED, approver_id, comments, now)

            if following is not None:
                following.assigned_at = now
            else:
                self._finalize(model, ApprovalStatus.APPROVED, now)

            model.current_step_data = current_step_data(current_step(model.steps))
            self._flush("ApprovalStep", str(step.step_id))

            self._events.record(
                request_id,
                ApprovalEventAction.STEP_APPROVED,
                actor_id=approver_id,
                step_number=step.step_number,
                payload={"step_name": step.step_name, "comments": comments},
            )
            if following is not None:
                self._events.record(
                    request_id,
                    ApprovalEventAction.STEP_ASSIGNED,
                    step_number=following.step_number,
                    payload=self._assignment_payload(following),
                )
            else:
                self._events.record(
                    request_id,
                    ApprovalEventAction.APPROVED,
                    actor_id=approver_id,
                    payload={"final_step": step.step_number},
                )
            self._flush("ApprovalRequest", str(request_id))

            logger.info(
                "approval_step_approved",
                extra={
                    "step_number": step.step_number,
                    "step_name": step.step_name,
                    "request_status": model.status,
                },
            )

            if following is None:
                self._notify_status_mapper(model, ApprovalStatus.APPROVED)

        return model.to_dto()

    def reject_current_step(
        self,
        request_id: UUID,
        approver_id: UUID,
        comments: str | None = None,
    ) -> ApprovalRequestSnapshot:
        """Reject the current step and finalize the request as rejected.

        Later steps are left pending and unassigned.
        """
        model = self._load_request_model(request_id)

        with LogContext.bind(
            request_id=str(request_id),
            actor_id=str(approver_id),
            workflow_id=str(model.workflow_id),
        ):
            step = self._require_current_step(model, approver_id, action="reject")
            now = self._clock.now()
            self._decide_step(step, ApprovalStatus.REJECTED, approver_id, comments, now)
            self._finalize(model, ApprovalStatus.REJECTED, now)
            model.current_step_data = None
            self._flush("ApprovalStep", str(step.step_id))

            self._events.record(
                request_id,
                ApprovalEventAction.STEP_REJECTED,
                actor_id=approver_id,
                step_number=step.step_number,
                payload={"step_name": step.step_name, "comments": comments},
            )
            self._events.record(
                request_id,
                ApprovalEventAction.REJECTED,
                actor_id=approver_id,
                payload={"rejected_step": step.step_number},
            )
            self._flush("ApprovalRequest", str(request_id))

            logger.info(
                "approval_step_rejected",
                extra={
                    "step_number": step.step_number,
                    "step_name": step.step_name,
                },
            )

            self._notify_status_mapper(model, ApprovalStatus.REJECTED)

        return model.to_dto()

    def cancel(
        self,
        request_id: UUID,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> ApprovalRequestSnapshot:
        """Cancel a pending request and every step still pending."""
        model = self._load_request_model(request_id)
        current_status = ApprovalStatus(model.status)

        if current_status != ApprovalStatus.PENDING:
            raise ApprovalAlreadyResolvedError(str(request_id), current_status.value)

        with LogContext.bind(
            request_id=str(request_id),
            actor_id=str(actor_id) if actor_id else None,
            workflow_id=str(model.workflow_id),
        ):
            now = self._clock.now()
            cancelled_steps = []
            for step in model.steps:
                if step.status == ApprovalStatus.PENDING.value:
                    step.status = ApprovalStatus.CANCELLED.value
                    step.completed_at = now
                    cancelled_steps.append(step.step_number)

            self._finalize(model, ApprovalStatus.CANCELLED, now)
            model.notes = reason
            model.current_step_data = None
            self._flush("ApprovalRequest", str(request_id))

            self._events.record(
                request_id,
                ApprovalEventAction.CANCELLED,
                actor_id=actor_id,
                payload={"reason": reason, "cancelled_steps": cancelled_steps},
            )
            self._flush("ApprovalRequest", str(request_id))

            logger.info(
                "approval_request_cancelled",
                extra={"cancelled_steps": cancelled_steps},
            )

        return model.to_dto()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_request_model(self, request_id: UUID) -> ApprovalRequestModel:
        """Load request model by request_id, raise if not found."""
        model = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()

        if model is None:
            raise ApprovalRequestNotFoundError(str(request_id))

        return model

    def _require_current_step(
        self,
        model: ApprovalRequestModel,
        actor_id: UUID,
        action: str,
    ) -> ApprovalStepModel:
        step = current_step(model.steps)
        if model.status != ApprovalStatus.PENDING.value or step is None:
            raise NoPendingStepError(str(model.request_id), model.status, action)

        if not is_authorized(step, actor_id):
            logger.warning(
                "approval_unauthorized_actor",
                extra={
                    "step_number": step.step_number,
                    "required_approver_id": str(step.approver_id),
                },
            )
            raise UnauthorizedApproverError(
                str(model.request_id),
                step.step_number,
                str(actor_id),
                str(step.approver_id),
            )
        return step

    def _decide_step(
        self,
        step: ApprovalStepModel,
        outcome: ApprovalStatus,
        actor_id: UUID,
        comments: str | None,
        now: datetime,
    ) -> None:
        if not can_transition(ApprovalStatus(step.status), outcome):
            raise InvalidApprovalTransitionError(step.status, outcome.value)
        step.status = outcome.value
        step.decided_by = actor_id
        step.completed_at = now
        step.comments = comments

    def _finalize(
        self,
        model: ApprovalRequestModel,
        outcome: ApprovalStatus,
        now: datetime,
    ) -> None:
        if not can_transition(ApprovalStatus(model.status), outcome):
            raise InvalidApprovalTransitionError(model.status, outcome.value)
        model.status = outcome.value
        model.completed_at = now

    def _notify_status_mapper(
        self,
        model: ApprovalRequestModel,
        outcome: ApprovalStatus,
    ) -> None:
        ref = ApprovableRef(model.approvable_type, model.approvable_id)
        mapper = self._status_mappers.get(ref.approvable_type)
        if mapper is None:
            logger.info(
                "status_mapper_not_registered",
                extra={"approvable_type": ref.approvable_type, "outcome": outcome.value},
            )
            return

        if outcome == ApprovalStatus.APPROVED:
            mapper.on_approved(ref)
        else:
            mapper.on_rejected(ref)

        logger.info(
            "status_mapper_notified",
            extra={
                "approvable_type": ref.approvable_type,
                "approvable_id": ref.approvable_id,
                "outcome": outcome.value,
            },
        )

    @staticmethod
    def _assignment_payload(step: ApprovalStepModel) -> dict:
        return {
            "step_name": step.step_name,
            "approver_id": str(step.approver_id) if step.approver_id else None,
        }
