"""
approval_engines.triggers -- Pure workflow trigger evaluation.

Responsibility:
    Decide whether a workflow definition applies to an approvable item, and
    pick the single best-matching definition out of a candidate list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain types.

Invariants enforced:
    - Conjunctive conditions: every configured condition must pass.
    - Role and department conditions are skipped, not failed, when the item
      has no user or the user has no role/department value.
    - Deterministic ordering: candidates sorted by (priority, name,
      workflow_id) before evaluation; first match wins.

Failure modes:
    - An item with no total (or no currency) fails any amount (or currency)
      condition; those values are always expected to be determinable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from approval_kernel.domain.approvable import ApprovableItem
from approval_kernel.domain.workflow import (
    AmountRangeCondition,
    CurrencyCondition,
    DepartmentCondition,
    RoleCondition,
    TriggerCondition,
    WorkflowDefinition,
)


@dataclass(frozen=True)
class TriggerEvaluation:
    """Result of evaluating one definition against one item."""

    triggered: bool
    failed_conditions: tuple[str, ...] = ()
    reason: str = ""


@dataclass(frozen=True)
class WorkflowSelection:
    """Outcome of choosing among candidate definitions for one item."""

    selected: WorkflowDefinition | None
    rejected: tuple[tuple[WorkflowDefinition, TriggerEvaluation], ...] = ()


def should_trigger(definition: WorkflowDefinition, item: ApprovableItem) -> bool:
    """True if ``definition`` is active and none of its conditions reject ``item``."""
    return explain_trigger(definition, item).triggered


def explain_trigger(
    definition: WorkflowDefinition,
    item: ApprovableItem,
) -> TriggerEvaluation:
    """Evaluate every condition and report which ones rejected the item."""
    if not definition.is_active:
        return TriggerEvaluation(triggered=False, reason="Workflow inactive")

    failed = tuple(
        condition.kind
        for condition in definition.conditions.conditions
        if not condition_passes(condition, item)
    )
    if failed:
        return TriggerEvaluation(
            triggered=False,
            failed_conditions=failed,
            reason=f"Rejected by: {', '.join(failed)}",
        )
    return TriggerEvaluation(triggered=True, reason="All conditions passed")


def condition_passes(condition: TriggerCondition, item: ApprovableItem) -> bool:
    """Evaluate a single tagged condition against an item."""
    if isinstance(condition, AmountRangeCondition):
        amount = item.total_amount
        if amount is None:
            return False
        if condition.min_amount is not None and amount < condition.min_amount:
            return False
        if condition.max_amount is not None and amount > condition.max_amount:
            return False
        return True

    if isinstance(condition, CurrencyCondition):
        if not condition.currencies:
            return True
        return item.currency is not None and item.currency.upper() in condition.currencies

    if isinstance(condition, RoleCondition):
        role = item.user.role if item.user is not None else None
        if not condition.roles or not role:
            return True
        return role in condition.roles

    if isinstance(condition, DepartmentCondition):
        department = item.user.department if item.user is not None else None
        if not condition.departments or not department:
            return True
        return department in condition.departments

    raise TypeError(f"Unknown condition type: {type(condition).__name__}")


def order_candidates(
    definitions: Iterable[WorkflowDefinition],
) -> list[WorkflowDefinition]:
    """Sort candidates by (priority, name, workflow_id)."""
    return sorted(
        definitions,
        key=lambda d: (d.priority, d.name, str(d.workflow_id)),
    )


def select_workflow(
    definitions: Iterable[WorkflowDefinition],
    item: ApprovableItem,
) -> WorkflowSelection:
    """Pick the first definition for the item's type that triggers.

    Definitions for other target types are ignored; the item type is
    compared lower-cased.  Candidates evaluated before the match (or all
    of them, when nothing matches) are reported in ``rejected``.
    """
    target_type = item.approvable_type.lower()
    rejected: list[tuple[WorkflowDefinition, TriggerEvaluation]] = []
    for definition in order_candidates(definitions):
        if definition.target_type != target_type:
            continue
        evaluation = explain_trigger(definition, item)
        if evaluation.triggered:
            return WorkflowSelection(selected=definition, rejected=tuple(rejected))
        rejected.append((definition, evaluation))
    return WorkflowSelection(selected=None, rejected=tuple(rejected))
