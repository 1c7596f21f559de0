"""
Tests for the structured logging used by the approval kernel.

Covers:
- StructuredFormatter: kernel error fields expanded as exc_*, value types
- LogContext.bind(): request/actor/workflow scoping as the services use it
- Service log records carry the bound context
- get_logger() / configure_logging(): namespace and idempotence
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from approval_kernel.exceptions import OptimisticLockError, UnauthorizedApproverError
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from approval_kernel.services.approval_service import ApprovalService
from tests.conftest import make_item

APPROVAL_LOGGER = "approval_kernel.services.approval"


def format_record(message: str, *, extra: dict | None = None, exc: Exception | None = None) -> dict:
    """Run one record through StructuredFormatter and parse the JSON line."""
    exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
    record = logging.getLogger(APPROVAL_LOGGER).makeRecord(
        APPROVAL_LOGGER, logging.WARNING, __file__, 1, message, (), exc_info, extra=extra,
    )
    return json.loads(StructuredFormatter().format(record))


@pytest.fixture
def approval_service(session, deterministic_clock):
    return ApprovalService(session, clock=deterministic_clock)


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_unauthorized_approver_fields_expanded(self):
        request_id, actor_id, required = str(uuid4()), str(uuid4()), str(uuid4())
        error = UnauthorizedApproverError(request_id, 2, actor_id, required)

        payload = format_record("approval_denied", exc=error)

        assert payload["exc_type"] == "UnauthorizedApproverError"
        assert payload["exc_code"] == "UNAUTHORIZED_APPROVER"
        assert payload["exc_request_id"] == request_id
        assert payload["exc_step_number"] == 2
        assert payload["exc_actor_id"] == actor_id
        assert payload["exc_required_approver_id"] == required
        assert "exc_args" not in payload

    def test_optimistic_lock_fields_expanded(self):
        error = OptimisticLockError("ApprovalRequest", "req-42")

        payload = format_record("flush_failed", exc=error)

        assert payload["exc_code"] == "OPTIMISTIC_LOCK_CONFLICT"
        assert payload["exc_entity_type"] == "ApprovalRequest"
        assert payload["exc_entity_id"] == "req-42"
        assert "ApprovalRequest req-42" in payload["exc_message"]

    def test_amounts_ids_and_timestamps_serialized_as_strings(self):
        approver_id = uuid4()
        decided_at = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

        payload = format_record(
            "approval_step_approved",
            extra={"amount": Decimal("1250.00"), "decided_by": approver_id, "decided_at": decided_at},
        )

        assert payload["amount"] == "1250.00"
        assert payload["decided_by"] == str(approver_id)
        assert payload["decided_at"] == "2024-03-01T09:30:00+00:00"
        assert payload["logger"] == APPROVAL_LOGGER
        assert payload["level"] == "WARNING"

    def test_no_context_fields_outside_bind(self):
        payload = format_record("workflow_not_found_for_item")
        assert not {"request_id", "actor_id", "workflow_id"} & payload.keys()


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContextBinding:

    def test_nested_bind_restores_outer_request(self):
        workflow_id = str(uuid4())
        with LogContext.bind(request_id="req-outer", workflow_id=workflow_id):
            with LogContext.bind(request_id="req-inner", actor_id="approver-1"):
                assert LogContext.get_all() == {
                    "request_id": "req-inner",
                    "actor_id": "approver-1",
                    "workflow_id": workflow_id,
                }
            assert LogContext.get_all() == {"request_id": "req-outer", "workflow_id": workflow_id}
        assert LogContext.get_all() == {}

    def test_unknown_actor_not_bound(self):
        with LogContext.bind(request_id="req-1", actor_id=None):
            payload = format_record("approval_request_cancelled")
        assert payload["request_id"] == "req-1"
        assert "actor_id" not in payload

    def test_bind_restored_when_body_raises(self):
        with pytest.raises(UnauthorizedApproverError):
            with LogContext.bind(request_id="req-1", actor_id="someone"):
                raise UnauthorizedApproverError("req-1", 1, "someone", "manager")
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# Records emitted by the services
# ---------------------------------------------------------------------------


class TestServiceLogRecords:

    def test_create_request_record_carries_context(
        self, approval_service, saved_definition, test_actor_id, captured_logs,
    ):
        definition = saved_definition()
        request = approval_service.create_request(definition, make_item(), test_actor_id)

        created = [r for r in captured_logs() if r["message"] == "approval_request_created"]
        assert len(created) == 1
        assert created[0]["logger"] == APPROVAL_LOGGER
        assert created[0]["request_id"] == str(request.request_id)
        assert created[0]["actor_id"] == str(test_actor_id)
        assert created[0]["workflow_id"] == str(definition.workflow_id)
        assert created[0]["step_count"] == 3
        assert LogContext.get_all() == {}

    def test_unauthorized_actor_warning_carries_context(
        self, approval_service, saved_definition, test_actor_id, captured_logs,
    ):
        manager = uuid4()
        definition = saved_definition(approvers=(manager, None, None))
        request = approval_service.create_request(definition, make_item(), test_actor_id)
        intruder = uuid4()

        with pytest.raises(UnauthorizedApproverError):
            approval_service.approve_current_step(request.request_id, intruder)

        denied = [r for r in captured_logs() if r["message"] == "approval_unauthorized_actor"]
        assert denied[0]["level"] == "WARNING"
        assert denied[0]["request_id"] == str(request.request_id)
        assert denied[0]["actor_id"] == str(intruder)
        assert denied[0]["step_number"] == 1
        assert denied[0]["required_approver_id"] == str(manager)

    def test_cancel_without_actor_omits_actor_id(
        self, approval_service, saved_definition, test_actor_id, captured_logs,
    ):
        request = approval_service.create_request(saved_definition(), make_item(), test_actor_id)
        approval_service.cancel(request.request_id, reason="Duplicate")

        cancelled = [r for r in captured_logs() if r["message"] == "approval_request_cancelled"]
        assert cancelled[0]["request_id"] == str(request.request_id)
        assert cancelled[0]["cancelled_steps"] == [1, 2, 3]
        assert "actor_id" not in cancelled[0]


# ---------------------------------------------------------------------------
# Logger factory and configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def fresh_logging():
    """Start from an unconfigured kernel logger; restore the suite config after."""
    reset_logging()
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestConfigureLogging:

    def test_get_logger_namespaced_under_kernel(self):
        assert get_logger("services.approval").name == APPROVAL_LOGGER

    def test_configure_is_idempotent(self, fresh_logging):
        first, second = StringIO(), StringIO()
        configure_logging(stream=first)
        configure_logging(stream=second)

        kernel_logger = logging.getLogger("approval_kernel")
        assert len(kernel_logger.handlers) == 1
        assert kernel_logger.propagate is False

        get_logger("services.workflow").info("workflow_definition_saved", extra={"is_new": True})
        assert json.loads(first.getvalue())["is_new"] is True
        assert second.getvalue() == ""
