"""
Module: approval_kernel.models.workflow
Responsibility: ORM persistence for workflow definitions (``approval_workflows``).

Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain types it converts to and from.

Invariants enforced:
    - ``steps`` and ``conditions`` are JSON payloads in the encoding owned by
      ``approval_kernel.domain.workflow``; they are validated before save by
      WorkflowDefinitionService, never here.
    - ``target_type`` is stored lower-cased.
    - Read-only at resolution time.  Requests copy step templates into their
      own ``step_data`` so later edits never reach in-flight requests.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import TrackedBase, UUIDString
from approval_kernel.domain.workflow import (
    WorkflowDefinition,
    conditions_from_json,
    conditions_to_json,
    step_template_from_json,
    step_template_to_json,
)


class ApprovalWorkflowModel(TrackedBase):
    """Persistent workflow definition, edited by administrators."""

    __tablename__ = "approval_workflows"

    __table_args__ = (
        Index(
            "ix_approval_workflows_resolution",
            "target_type", "is_active", "priority",
        ),
    )

    workflow_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    target_type: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list,
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalWorkflow {self.workflow_id} {self.name} "
            f"target={self.target_type} active={self.is_active}>"
        )

    def to_dto(self) -> WorkflowDefinition:
        """Convert ORM model to frozen domain definition."""
        return WorkflowDefinition(
            workflow_id=self.workflow_id,
            name=self.name,
            description=self.description,
            target_type=self.target_type,
            priority=self.priority,
            is_active=self.is_active,
            steps=tuple(step_template_from_json(s) for s in self.steps or ()),
            conditions=conditions_from_json(self.conditions),
        )

    def apply_dto(self, dto: WorkflowDefinition) -> None:
        """Overwrite editable columns from a domain definition."""
        self.name = dto.name
        self.description = dto.description
        self.target_type = dto.target_type.lower()
        self.priority = dto.priority
        self.is_active = dto.is_active
        self.steps = [step_template_to_json(s) for s in dto.steps]
        self.conditions = conditions_to_json(dto.conditions)

    @classmethod
    def from_dto(cls, dto: WorkflowDefinition, created_by_id: UUID) -> ApprovalWorkflowModel:
        """Create ORM model from a domain definition."""
        model = cls(workflow_id=dto.workflow_id, created_by_id=created_by_id)
        model.apply_dto(dto)
        return model
