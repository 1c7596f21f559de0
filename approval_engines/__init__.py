"""
Module: approval_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    approval engines.  This is the canonical import surface for the
    kernel services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain types (and sibling engine modules).
    MUST NOT import approval_kernel services, selectors, models, or db.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  Timestamps are passed
      in by the services, which own the injected Clock.
    - Determinism: identical inputs always produce identical outputs.
"""

from approval_engines.progression import (
    can_be_approved_by,
    current_step,
    current_step_data,
    has_single_current_step,
    is_authorized,
    next_step,
    progress_percentage,
)
from approval_engines.statistics import (
    RequestTiming,
    compute_statistics,
    period_window_start,
)
from approval_engines.triggers import (
    TriggerEvaluation,
    WorkflowSelection,
    condition_passes,
    explain_trigger,
    order_candidates,
    select_workflow,
    should_trigger,
)

__all__ = [
    "RequestTiming",
    "TriggerEvaluation",
    "WorkflowSelection",
    "can_be_approved_by",
    "compute_statistics",
    "condition_passes",
    "current_step",
    "current_step_data",
    "explain_trigger",
    "has_single_current_step",
    "is_authorized",
    "next_step",
    "order_candidates",
    "period_window_start",
    "progress_percentage",
    "select_workflow",
    "should_trigger",
]
