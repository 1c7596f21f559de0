"""ORM models for the approval kernel."""

from approval_kernel.models.approval import ApprovalRequestModel, ApprovalStepModel
from approval_kernel.models.approval_event import ApprovalEventModel
from approval_kernel.models.workflow import ApprovalWorkflowModel

__all__ = [
    "ApprovalEventModel",
    "ApprovalRequestModel",
    "ApprovalStepModel",
    "ApprovalWorkflowModel",
]
