"""
WorkflowDefinitionService -- administrator edits to workflow definitions.

Responsibility:
    Validate and persist ``WorkflowDefinition`` objects into
    ``approval_workflows``; look them up, list them, and deactivate them.

Architecture position:
    Kernel > Services.  Uses ``approval_config.validator`` for save-time
    validation so that the same rules apply to YAML-loaded and
    programmatically built definitions.

Invariants enforced:
    - Nothing invalid is ever stored: ``save_definition`` runs the full
      validator and rejects with every error at once.
    - In-flight requests are unaffected by edits: steps copy their
      template metadata into ``step_data`` at creation.

Failure modes:
    - WorkflowConfigurationError listing all validation errors.
    - WorkflowNotFoundError for an unknown ``workflow_id``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_config.validator import validate_definition
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.workflow import WorkflowDefinition
from approval_kernel.exceptions import (
    WorkflowConfigurationError,
    WorkflowNotFoundError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.workflow import ApprovalWorkflowModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.workflow")


class WorkflowDefinitionService(BaseService[ApprovalWorkflowModel]):
    """
    Persists workflow definitions.

    Contract:
        ``save_definition`` is an upsert keyed on ``workflow_id``.

    Guarantees:
        - Validation warnings are logged, never raised.
        - ``updated_by_id`` and ``updated_at`` track the last editor.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def save_definition(
        self,
        definition: WorkflowDefinition,
        actor_id: UUID,
    ) -> WorkflowDefinition:
        result = validate_definition(definition)
        for warning in result.warnings:
            logger.warning(
                "workflow_definition_warning",
                extra={"workflow_name": definition.name, "warning": warning},
            )
        if not result.is_valid:
            raise WorkflowConfigurationError(definition.name, result.errors)

        model = self._find_model(definition.workflow_id)
        if model is None:
            model = ApprovalWorkflowModel.from_dto(definition, created_by_id=actor_id)
            self.session.add(model)
            created = True
        else:
            model.apply_dto(definition)
            model.updated_by_id = actor_id
            model.updated_at = self._clock.now()
            created = False

        self._flush("ApprovalWorkflow", str(definition.workflow_id))

        logger.info(
            "workflow_definition_saved",
            extra={
                "workflow_id": str(definition.workflow_id),
                "workflow_name": definition.name,
                "target_type": model.target_type,
                "is_new": created,
                "step_count": definition.step_count,
            },
        )
        return model.to_dto()

    def get_definition(self, workflow_id: UUID) -> WorkflowDefinition:
        return self._load_model(workflow_id).to_dto()

    def deactivate(self, workflow_id: UUID, actor_id: UUID) -> WorkflowDefinition:
        """Stop a definition from matching new items.  Existing requests continue."""
        model = self._load_model(workflow_id)
        if model.is_active:
            model.is_active = False
            model.updated_by_id = actor_id
            model.updated_at = self._clock.now()
            self._flush("ApprovalWorkflow", str(workflow_id))
            logger.info(
                "workflow_definition_deactivated",
                extra={"workflow_id": str(workflow_id), "actor_id": str(actor_id)},
            )
        return model.to_dto()

    def list_definitions(
        self,
        target_type: str | None = None,
        active_only: bool = False,
    ) -> list[WorkflowDefinition]:
        stmt = select(ApprovalWorkflowModel)
        if target_type is not None:
            stmt = stmt.where(ApprovalWorkflowModel.target_type == target_type.lower())
        if active_only:
            stmt = stmt.where(ApprovalWorkflowModel.is_active.is_(True))
        stmt = stmt.order_by(
            ApprovalWorkflowModel.target_type,
            ApprovalWorkflowModel.priority,
            ApprovalWorkflowModel.name,
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def _find_model(self, workflow_id: UUID) -> ApprovalWorkflowModel | None:
        return self.session.execute(
            select(ApprovalWorkflowModel).where(
                ApprovalWorkflowModel.workflow_id == workflow_id,
            )
        ).scalar_one_or_none()

    def _load_model(self, workflow_id: UUID) -> ApprovalWorkflowModel:
        model = self._find_model(workflow_id)
        if model is None:
            raise WorkflowNotFoundError(str(workflow_id))
        return model
