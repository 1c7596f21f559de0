"""
WorkflowResolver -- find the workflow definition that governs an item.

Responsibility:
    Load the active definitions for an item's type and return the first
    one whose trigger conditions accept the item.

Architecture position:
    Kernel > Services.  Read-only: queries ``approval_workflows`` and
    delegates all matching logic to ``approval_engines.triggers``.

Invariants enforced:
    - Only active definitions whose ``target_type`` equals the item's
      lower-cased type are considered.
    - Deterministic: candidates are evaluated in (priority, name,
      workflow_id) order and the first match wins.

Failure modes:
    - None raised.  No matching definition returns ``None``.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.triggers import order_candidates, select_workflow
from approval_kernel.domain.approvable import ApprovableItem
from approval_kernel.domain.workflow import WorkflowDefinition
from approval_kernel.logging_config import get_logger
from approval_kernel.models.workflow import ApprovalWorkflowModel

logger = get_logger("services.workflow_resolver")


class WorkflowResolver:
    """Resolves approvable items to workflow definitions."""

    def __init__(self, session: Session):
        self._session = session

    def candidates_for(self, approvable_type: str) -> list[WorkflowDefinition]:
        """Active definitions for a target type, in evaluation order."""
        models = self._session.execute(
            select(ApprovalWorkflowModel).where(
                ApprovalWorkflowModel.target_type == approvable_type.lower(),
                ApprovalWorkflowModel.is_active.is_(True),
            )
        ).scalars().all()
        return order_candidates(m.to_dto() for m in models)

    def find_workflow_for_item(self, item: ApprovableItem) -> WorkflowDefinition | None:
        """Return the first matching active definition, or None."""
        selection = select_workflow(self.candidates_for(item.approvable_type), item)

        for definition, evaluation in selection.rejected:
            logger.debug(
                "workflow_not_triggered",
                extra={
                    "workflow_id": str(definition.workflow_id),
                    "workflow_name": definition.name,
                    "failed_conditions": list(evaluation.failed_conditions),
                },
            )

        if selection.selected is None:
            logger.info(
                "workflow_not_found_for_item",
                extra={
                    "approvable_type": item.approvable_type,
                    "approvable_id": item.approvable_id,
                },
            )
            return None

        definition = selection.selected
        logger.info(
            "workflow_resolved",
            extra={
                "workflow_id": str(definition.workflow_id),
                "workflow_name": definition.name,
                "approvable_type": item.approvable_type,
                "approvable_id": item.approvable_id,
            },
        )
        return definition
