"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (other than the injectable Clock interface)
- I/O

All domain objects are immutable and deterministic.
"""

from approval_kernel.domain.approvable import (
    ApprovableItem,
    ApprovableRef,
    ApprovableUser,
    StatusMapper,
    StatusMapperRegistry,
    TableStatusMapper,
)
from approval_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalEventAction,
    ApprovalRequestSnapshot,
    ApprovalStatus,
    ApprovalStepSnapshot,
    StatisticsPeriod,
    WorkflowStatistics,
)
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.workflow import (
    AmountRangeCondition,
    CurrencyCondition,
    DepartmentCondition,
    RoleCondition,
    StepTemplate,
    TriggerConditions,
    WorkflowDefinition,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "TERMINAL_APPROVAL_STATUSES",
    "AmountRangeCondition",
    "ApprovableItem",
    "ApprovableRef",
    "ApprovableUser",
    "ApprovalEventAction",
    "ApprovalRequestSnapshot",
    "ApprovalStatus",
    "ApprovalStepSnapshot",
    "Clock",
    "CurrencyCondition",
    "DepartmentCondition",
    "DeterministicClock",
    "RoleCondition",
    "StatisticsPeriod",
    "StatusMapper",
    "StatusMapperRegistry",
    "StepTemplate",
    "SystemClock",
    "TableStatusMapper",
    "TriggerConditions",
    "WorkflowDefinition",
    "WorkflowStatistics",
]
