"""
Tests for the approval ORM models and their lifecycle listeners.

Covers:
- Requests and steps are never deleted
- Terminal statuses never change again
- Approval events are append-only
- UNIQUE(request_id, step_number)
- Version counters advance on every update
- Workflow definitions survive a JSON round trip through the table
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from approval_kernel.domain.workflow import StepTemplate, TriggerConditions
from approval_kernel.exceptions import ImmutabilityViolationError
from approval_kernel.models.approval import ApprovalRequestModel, ApprovalStepModel
from approval_kernel.models.approval_event import ApprovalEventModel
from approval_kernel.models.workflow import ApprovalWorkflowModel
from approval_kernel.services.approval_service import ApprovalService
from tests.conftest import make_definition, make_item


@pytest.fixture
def approval_service(session, deterministic_clock):
    return ApprovalService(session, clock=deterministic_clock)


@pytest.fixture
def pending_request(saved_definition, approval_service, test_actor_id):
    """A freshly created three-step request."""
    definition = saved_definition()
    return approval_service.create_request(definition, make_item(), test_actor_id)


def load_request(session, request_id) -> ApprovalRequestModel:
    return session.execute(
        select(ApprovalRequestModel).where(ApprovalRequestModel.request_id == request_id)
    ).scalar_one()


class TestRetention:
    """Requests and steps are kept forever."""

    def test_request_delete_rejected(self, session, pending_request):
        model = load_request(session, pending_request.request_id)
        session.delete(model)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "ApprovalRequest"

    def test_step_delete_rejected(self, session, pending_request):
        step = load_request(session, pending_request.request_id).steps[2]
        session.delete(step)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "ApprovalStep"


class TestTerminalStatusGuard:
    """A terminal status is final at the ORM level too."""

    def test_decided_step_cannot_reopen(
        self, session, pending_request, approval_service, test_actor_id,
    ):
        approval_service.approve_current_step(pending_request.request_id, test_actor_id)
        step = load_request(session, pending_request.request_id).steps[0]
        assert step.status == "approved"

        step.status = "pending"
        with pytest.raises(ImmutabilityViolationError, match="terminal"):
            session.flush()

    def test_cancelled_request_cannot_reopen(self, session, pending_request, approval_service):
        approval_service.cancel(pending_request.request_id)
        model = load_request(session, pending_request.request_id)

        model.status = "pending"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_non_status_edits_on_pending_rows_allowed(self, session, pending_request):
        model = load_request(session, pending_request.request_id)
        model.notes = "extra context"
        session.flush()
        assert load_request(session, pending_request.request_id).notes == "extra context"


class TestEventsAppendOnly:
    """Approval events cannot be edited or removed."""

    def _first_event(self, session, request_id) -> ApprovalEventModel:
        return session.execute(
            select(ApprovalEventModel)
            .where(ApprovalEventModel.request_id == request_id)
            .order_by(ApprovalEventModel.sequence)
        ).scalars().first()

    def test_update_rejected(self, session, pending_request):
        event = self._first_event(session, pending_request.request_id)
        event.payload = {"tampered": True}

        with pytest.raises(ImmutabilityViolationError, match="immutable"):
            session.flush()

    def test_delete_rejected(self, session, pending_request):
        session.delete(self._first_event(session, pending_request.request_id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestConstraints:

    def test_duplicate_step_number_rejected(self, session, pending_request):
        session.add(ApprovalStepModel(
            step_id=uuid4(),
            request_id=pending_request.request_id,
            step_number=1,
            step_name="Duplicate",
            status="pending",
            step_data={},
        ))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_invalid_status_rejected(self, session, pending_request):
        model = load_request(session, pending_request.request_id)
        model.status = "on_hold"
        with pytest.raises(IntegrityError):
            session.flush()


class TestVersionCounters:

    def test_versions_start_at_one(self, session, pending_request):
        model = load_request(session, pending_request.request_id)
        assert model.version == 1
        assert all(step.version == 1 for step in model.steps)

    def test_versions_advance_on_update(
        self, session, pending_request, approval_service, test_actor_id,
    ):
        approval_service.approve_current_step(pending_request.request_id, test_actor_id)
        model = load_request(session, pending_request.request_id)

        assert model.version == 2
        assert model.steps[0].version == 2
        assert model.steps[1].version == 2
        assert model.steps[2].version == 1


class TestWorkflowModel:

    def test_definition_roundtrip(self, session, workflow_service, test_actor_id):
        approver = uuid4()
        definition = make_definition(
            name="Big quotes",
            target_type="Quotation",
            step_names=("Sales manager", "Pricing"),
            approvers=(approver, None),
            conditions=TriggerConditions.of(
                min_amount="1000.50", currencies=["USD"], roles=["rep"],
            ),
            priority=5,
        )
        workflow_service.save_definition(definition, test_actor_id)
        session.expire_all()

        model = session.execute(
            select(ApprovalWorkflowModel).where(
                ApprovalWorkflowModel.workflow_id == definition.workflow_id,
            )
        ).scalar_one()
        loaded = model.to_dto()

        assert model.target_type == "quotation"
        assert model.created_by_id == test_actor_id
        assert loaded.steps[0] == StepTemplate("Sales manager", approver, {"position": 1})
        assert loaded.conditions.get("amount_range").min_amount == Decimal("1000.50")
        assert loaded.conditions == definition.conditions
        assert loaded.priority == 5
