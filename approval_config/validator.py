"""
Workflow Definition Validator (``approval_config.validator``).

Responsibility
--------------
Validates a ``WorkflowDefinition`` before it is stored, so that resolution
and request creation never meet a malformed definition.

Architecture position
---------------------
**Config layer** -- save-time validation.  Called by
``WorkflowDefinitionService.save_definition`` and by the YAML loading
tooling.  Depends only on kernel domain types.

Invariants enforced
-------------------
* An active definition has at least one step; every step has a name.
* Each condition kind appears at most once.
* Amount bounds are non-negative and ``min_amount <= max_amount``.
* Currency codes are three upper-case letters.

Failure modes
-------------
* Validation errors (``WorkflowValidationResult.errors``) -> the
  definition MUST NOT be stored.
* Validation warnings (``WorkflowValidationResult.warnings``) -> the
  definition may be stored but should be reviewed.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field

from approval_kernel.domain.workflow import (
    AmountRangeCondition,
    CurrencyCondition,
    DepartmentCondition,
    RoleCondition,
    WorkflowDefinition,
)

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


@dataclass
class WorkflowValidationResult:
    """
    Result of definition validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings never block a save.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_definition(definition: WorkflowDefinition) -> WorkflowValidationResult:
    """
    Validate one workflow definition.

    Postconditions:
        - Returns a ``WorkflowValidationResult``; never raises for invalid
          content.  All problems are collected, not just the first.
    """
    result = WorkflowValidationResult()

    if not definition.name or not definition.name.strip():
        result.add_error("Workflow name must not be empty")
    if not definition.target_type or not definition.target_type.strip():
        result.add_error("Workflow target_type must not be empty")

    _validate_steps(definition, result)
    _validate_conditions(definition, result)
    return result


def _validate_steps(definition: WorkflowDefinition, result: WorkflowValidationResult) -> None:
    if not definition.steps:
        if definition.is_active:
            result.add_error("Active workflow must have at least one step")
        else:
            result.add_warning("Workflow has no steps")
        return

    for number, step in enumerate(definition.steps, start=1):
        if not step.name or not step.name.strip():
            result.add_error(f"Step {number} has an empty name")

    names = Counter(s.name for s in definition.steps if s.name)
    for name, count in sorted(names.items()):
        if count > 1:
            result.add_warning(f"Step name {name!r} is used {count} times")


def _validate_conditions(definition: WorkflowDefinition, result: WorkflowValidationResult) -> None:
    kinds = Counter(definition.conditions.kinds)
    for kind, count in sorted(kinds.items()):
        if count > 1:
            result.add_error(f"Condition {kind!r} appears {count} times")

    for condition in definition.conditions.conditions:
        if isinstance(condition, AmountRangeCondition):
            low, high = condition.min_amount, condition.max_amount
            if low is None and high is None:
                result.add_warning("Amount condition has neither min_amount nor max_amount")
            if low is not None and low < 0:
                result.add_error(f"min_amount must not be negative: {low}")
            if high is not None and high < 0:
                result.add_error(f"max_amount must not be negative: {high}")
            if low is not None and high is not None and low > high:
                result.add_error(f"min_amount {low} is greater than max_amount {high}")

        elif isinstance(condition, CurrencyCondition):
            if not condition.currencies:
                result.add_warning("Currency condition allows no currencies and is ignored")
            for code in sorted(condition.currencies):
                if not _CURRENCY_RE.match(code):
                    result.add_error(f"Invalid currency code: {code!r}")

        elif isinstance(condition, RoleCondition):
            if not condition.roles:
                result.add_warning("Role condition lists no roles and is ignored")

        elif isinstance(condition, DepartmentCondition):
            if not condition.departments:
                result.add_warning("Department condition lists no departments and is ignored")
