"""Services for the approval kernel (write side)."""

from approval_kernel.services.approval_service import ApprovalService
from approval_kernel.services.event_recorder import ApprovalEventRecorder
from approval_kernel.services.workflow_resolver import WorkflowResolver
from approval_kernel.services.workflow_service import WorkflowDefinitionService

__all__ = [
    "ApprovalEventRecorder",
    "ApprovalService",
    "WorkflowDefinitionService",
    "WorkflowResolver",
]
