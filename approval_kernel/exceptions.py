"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval decisions are business-rule checks. Callers (controllers, batch
jobs, notification layers) must react to them precisely: a permission
failure is shown to the user, a configuration error is reported to the
administrator, an optimistic lock conflict is re-read and re-tried by a human.

Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        service.approve_current_step(request_id, approver_id)
    except UnauthorizedApproverError as e:
        api_response(403, code=e.code, step=e.step_number)
    except NoPendingStepError as e:
        api_response(409, code=e.code, status=e.request_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalKernelError (base)
    |
    +-- WorkflowError
    |   +-- WorkflowNotFoundError
    |   +-- WorkflowConfigurationError
    |   +-- InactiveWorkflowError
    |
    +-- ApprovalError
    |   +-- ApprovalRequestNotFoundError
    |   +-- NoPendingStepError
    |   +-- UnauthorizedApproverError
    |   +-- ApprovalAlreadyResolvedError
    |   +-- InvalidApprovalTransitionError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Workflow        | WORKFLOW_NOT_FOUND            | Workflow ID doesn't exist
                | WORKFLOW_CONFIGURATION_INVALID| No steps, bad conditions, bad template
                | WORKFLOW_INACTIVE             | Request created from inactive workflow
----------------|-------------------------------|---------------------------------------
Approval        | APPROVAL_REQUEST_NOT_FOUND    | Request ID doesn't exist
                | NO_PENDING_STEP               | Approve/reject with no current step
                | UNAUTHORIZED_APPROVER         | Actor is not the step's fixed approver
                | APPROVAL_ALREADY_RESOLVED     | Cancel of a terminal request
                | INVALID_APPROVAL_TRANSITION   | Status change not in the state machine
----------------|-------------------------------|---------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT      | Row changed by another transaction
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Deleting requests/steps, editing events

None of these errors are retried by the kernel. They are business-rule
violations, not transient failures.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Workflow definition exceptions


class WorkflowError(ApprovalKernelError):
    """Base exception for workflow definition errors."""

    code: str = "WORKFLOW_ERROR"


class WorkflowNotFoundError(WorkflowError):
    """Workflow definition not found."""

    code: str = "WORKFLOW_NOT_FOUND"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")


class WorkflowConfigurationError(WorkflowError):
    """
    Workflow definition is malformed.

    Raised at save time for invalid templates or conditions, and at
    request-creation time for a definition without step templates.
    """

    code: str = "WORKFLOW_CONFIGURATION_INVALID"

    def __init__(self, workflow_name: str, errors: list[str]):
        self.workflow_name = workflow_name
        self.errors = list(errors)
        super().__init__(
            f"Invalid workflow configuration '{workflow_name}': "
            + "; ".join(self.errors)
        )


class InactiveWorkflowError(WorkflowError):
    """Attempted to instantiate a request from an inactive workflow."""

    code: str = "WORKFLOW_INACTIVE"

    def __init__(self, workflow_id: str, workflow_name: str):
        self.workflow_id = workflow_id
        self.workflow_name = workflow_name
        super().__init__(
            f"Workflow '{workflow_name}' ({workflow_id}) is not active"
        )


# Approval request exceptions


class ApprovalError(ApprovalKernelError):
    """Base exception for approval request errors."""

    code: str = "APPROVAL_ERROR"


class ApprovalRequestNotFoundError(ApprovalError):
    """Approval request not found."""

    code: str = "APPROVAL_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Approval request not found: {request_id}")


class NoPendingStepError(ApprovalError):
    """Approve or reject attempted while the request has no current step."""

    code: str = "NO_PENDING_STEP"

    def __init__(self, request_id: str, request_status: str, action: str):
        self.request_id = request_id
        self.request_status = request_status
        self.action = action
        super().__init__(
            f"No pending step to {action} on request {request_id} "
            f"(status={request_status})"
        )


class UnauthorizedApproverError(ApprovalError):
    """Actor is not the designated approver of the current step."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(
        self,
        request_id: str,
        step_number: int,
        actor_id: str,
        required_approver_id: str,
    ):
        self.request_id = request_id
        self.step_number = step_number
        self.actor_id = actor_id
        self.required_approver_id = required_approver_id
        super().__init__(
            f"Actor {actor_id} is not authorized to act on step {step_number} "
            f"of request {request_id}"
        )


class ApprovalAlreadyResolvedError(ApprovalError):
    """Mutation attempted on a request in a terminal status."""

    code: str = "APPROVAL_ALREADY_RESOLVED"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Approval request {request_id} is already resolved (status={status})"
        )


class InvalidApprovalTransitionError(ApprovalError):
    """Status change not permitted by the lifecycle state machine."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid approval transition: {from_status} -> {to_status}"
        )


# Concurrency-related exceptions


class ConcurrencyError(ApprovalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability-related exceptions


class ImmutabilityError(ApprovalKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Approval requests and steps are never deleted (audit trail retained);
    approval events are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
