"""Selectors for the approval kernel (read side)."""

from approval_kernel.selectors.approval_selector import ApprovalEventDTO, ApprovalSelector
from approval_kernel.selectors.workflow_selector import WorkflowSelector

__all__ = [
    "ApprovalEventDTO",
    "ApprovalSelector",
    "WorkflowSelector",
]
