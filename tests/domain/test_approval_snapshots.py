"""
Tests for approval lifecycle types and request/step snapshots.

Covers:
- APPROVAL_TRANSITIONS: pending is the only state with outgoing edges
- Step snapshot predicates (pending/approved/rejected/current)
- Processing time and human-readable elapsed time
- Request snapshot elapsed time, terminal flag, approvable reference
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from approval_kernel.domain.approvable import ApprovableRef
from approval_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalRequestSnapshot,
    ApprovalStatus,
    ApprovalStepSnapshot,
    can_transition,
)

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_step(**overrides) -> ApprovalStepSnapshot:
    values = dict(
        step_id=uuid4(),
        request_id=uuid4(),
        step_number=1,
        step_name="Manager",
        status=ApprovalStatus.PENDING,
        assigned_at=T0,
    )
    values.update(overrides)
    return ApprovalStepSnapshot(**values)


def make_request(**overrides) -> ApprovalRequestSnapshot:
    values = dict(
        request_id=uuid4(),
        workflow_id=uuid4(),
        approvable_type="invoice",
        approvable_id="INV-7",
        status=ApprovalStatus.PENDING,
        requested_by=uuid4(),
        requested_at=T0,
    )
    values.update(overrides)
    return ApprovalRequestSnapshot(**values)


class TestLifecycle:
    """Tests for the status state machine."""

    @pytest.mark.parametrize("target", [
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.CANCELLED,
    ])
    def test_pending_moves_to_every_terminal_state(self, target):
        assert can_transition(ApprovalStatus.PENDING, target)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_APPROVAL_STATUSES))
    def test_terminal_states_have_no_exits(self, terminal):
        assert APPROVAL_TRANSITIONS[terminal] == frozenset()
        for target in ApprovalStatus:
            assert not can_transition(terminal, target)

    def test_pending_cannot_stay_pending(self):
        assert not can_transition(ApprovalStatus.PENDING, ApprovalStatus.PENDING)


class TestStepSnapshot:
    """Tests for step predicates and timing."""

    def test_assigned_pending_step_is_current(self):
        step = make_step()
        assert step.is_pending
        assert step.is_current

    def test_unassigned_pending_step_is_not_current(self):
        step = make_step(assigned_at=None)
        assert step.is_pending
        assert not step.is_current

    def test_decided_step_predicates(self):
        approved = make_step(status=ApprovalStatus.APPROVED, completed_at=T0)
        rejected = make_step(status=ApprovalStatus.REJECTED, completed_at=T0)
        assert approved.is_approved and not approved.is_current
        assert rejected.is_rejected and not rejected.is_pending

    def test_processing_time_in_hours(self):
        step = make_step(
            status=ApprovalStatus.APPROVED,
            completed_at=T0 + timedelta(hours=2, minutes=30),
        )
        assert step.processing_time_in_hours == pytest.approx(2.5)

    def test_processing_time_needs_both_timestamps(self):
        assert make_step().processing_time_in_hours is None
        assert make_step(assigned_at=None, completed_at=T0).processing_time_in_hours is None

    def test_elapsed_time_runs_to_now_while_pending(self):
        step = make_step()
        assert step.elapsed_time(T0 + timedelta(hours=3)) == "3 hours"

    def test_elapsed_time_stops_at_completion(self):
        step = make_step(
            status=ApprovalStatus.APPROVED,
            completed_at=T0 + timedelta(days=1),
        )
        assert step.elapsed_time(T0 + timedelta(days=30)) == "1 day"

    def test_elapsed_time_none_when_unassigned(self):
        assert make_step(assigned_at=None).elapsed_time(T0) is None


class TestRequestSnapshot:
    """Tests for request-level derived values."""

    def test_pending_request(self):
        request = make_request()
        assert request.is_pending
        assert not request.is_terminal

    def test_terminal_request(self):
        request = make_request(status=ApprovalStatus.CANCELLED, completed_at=T0)
        assert request.is_terminal
        assert not request.is_pending

    def test_approvable_reference(self):
        assert make_request().approvable == ApprovableRef("invoice", "INV-7")

    def test_elapsed_until_now(self):
        request = make_request()
        assert request.elapsed(T0 + timedelta(minutes=45)) == timedelta(minutes=45)
        assert request.elapsed_time(T0 + timedelta(minutes=45)) == "45 minutes"

    def test_elapsed_until_completion(self):
        request = make_request(
            status=ApprovalStatus.APPROVED,
            completed_at=T0 + timedelta(weeks=2),
        )
        assert request.elapsed_time(T0 + timedelta(days=300)) == "2 weeks"
