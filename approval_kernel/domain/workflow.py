"""
Workflow definition types (``approval_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing a reusable approval workflow: ordered step
templates, tagged trigger conditions, and the definition that binds them to
an approvable item type.  Also owns the JSON shape of the ``steps`` and
``conditions`` columns so that the ORM layer and the YAML loader agree on
one encoding.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Each condition variant carries a ``kind`` tag used as its JSON
  discriminator; unknown tags are rejected on decode.
* ``TriggerConditions.of()`` never produces two conditions of one kind.
* Structural validation (non-empty steps, amount bounds, currency codes)
  lives in ``approval_config.validator`` and runs at save time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Iterable, Union
from uuid import UUID, uuid4


# =========================================================================
# Step templates
# =========================================================================


@dataclass(frozen=True)
class StepTemplate:
    """One configured stage of a workflow.

    ``approver_id`` pins the step to a single user; ``None`` means any
    authorized user may act.  ``metadata`` is copied verbatim into each
    request's ``step_data`` at creation time.
    """

    name: str
    approver_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)


# =========================================================================
# Trigger conditions (tagged variants)
# =========================================================================


@dataclass(frozen=True)
class AmountRangeCondition:
    """Item total must fall within ``[min_amount, max_amount]`` (inclusive)."""

    kind: ClassVar[str] = "amount_range"

    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


@dataclass(frozen=True)
class CurrencyCondition:
    """Item currency must be one of ``currencies``."""

    kind: ClassVar[str] = "currency"

    currencies: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RoleCondition:
    """Requesting user's role must be one of ``roles`` (when known)."""

    kind: ClassVar[str] = "role"

    roles: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DepartmentCondition:
    """Requesting user's department must be one of ``departments`` (when known)."""

    kind: ClassVar[str] = "department"

    departments: frozenset[str] = frozenset()


TriggerCondition = Union[
    AmountRangeCondition,
    CurrencyCondition,
    RoleCondition,
    DepartmentCondition,
]

CONDITION_TYPES: dict[str, type] = {
    AmountRangeCondition.kind: AmountRangeCondition,
    CurrencyCondition.kind: CurrencyCondition,
    RoleCondition.kind: RoleCondition,
    DepartmentCondition.kind: DepartmentCondition,
}


@dataclass(frozen=True)
class TriggerConditions:
    """Conjunctive set of trigger conditions.  Empty means "always triggers"."""

    conditions: tuple[TriggerCondition, ...] = ()

    @classmethod
    def of(
        cls,
        *,
        min_amount: Decimal | str | int | None = None,
        max_amount: Decimal | str | int | None = None,
        currencies: Iterable[str] | None = None,
        roles: Iterable[str] | None = None,
        departments: Iterable[str] | None = None,
    ) -> TriggerConditions:
        """Build a condition set from the flat keyword form."""
        conditions: list[TriggerCondition] = []
        if min_amount is not None or max_amount is not None:
            conditions.append(AmountRangeCondition(
                min_amount=_to_decimal(min_amount),
                max_amount=_to_decimal(max_amount),
            ))
        if currencies is not None:
            conditions.append(CurrencyCondition(
                currencies=frozenset(c.upper() for c in currencies),
            ))
        if roles is not None:
            conditions.append(RoleCondition(roles=frozenset(roles)))
        if departments is not None:
            conditions.append(DepartmentCondition(departments=frozenset(departments)))
        return cls(conditions=tuple(conditions))

    def get(self, kind: str) -> TriggerCondition | None:
        for condition in self.conditions:
            if condition.kind == kind:
                return condition
        return None

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(c.kind for c in self.conditions)

    @property
    def is_empty(self) -> bool:
        return not self.conditions


# =========================================================================
# Workflow definition
# =========================================================================


@dataclass(frozen=True)
class WorkflowDefinition:
    """A reusable approval workflow for one approvable item type.

    ``target_type`` is matched against the lower-cased item type.
    ``priority`` orders overlapping definitions: lower number is evaluated
    first, ties broken by ``name`` then ``workflow_id``.
    """

    name: str
    target_type: str
    steps: tuple[StepTemplate, ...]
    conditions: TriggerConditions = field(default_factory=TriggerConditions)
    is_active: bool = True
    priority: int = 100
    description: str = ""
    workflow_id: UUID = field(default_factory=uuid4)

    @property
    def step_count(self) -> int:
        return len(self.steps)


# =========================================================================
# JSON encoding (``steps`` / ``conditions`` columns)
# =========================================================================


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    # str() first so YAML floats keep their written digits
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def step_template_to_json(template: StepTemplate) -> dict[str, Any]:
    return {
        "name": template.name,
        "approver_id": str(template.approver_id) if template.approver_id else None,
        "metadata": dict(template.metadata),
    }


def step_template_from_json(data: dict[str, Any]) -> StepTemplate:
    """Decode one step template.

    Raises:
        KeyError: if ``name`` is missing.
        ValueError: if ``approver_id`` is not a UUID.
    """
    approver = data.get("approver_id")
    return StepTemplate(
        name=data["name"],
        approver_id=UUID(str(approver)) if approver else None,
        metadata=dict(data.get("metadata") or {}),
    )


def condition_to_json(condition: TriggerCondition) -> dict[str, Any]:
    if isinstance(condition, AmountRangeCondition):
        return {
            "kind": condition.kind,
            "min_amount": str(condition.min_amount) if condition.min_amount is not None else None,
            "max_amount": str(condition.max_amount) if condition.max_amount is not None else None,
        }
    if isinstance(condition, CurrencyCondition):
        return {"kind": condition.kind, "currencies": sorted(condition.currencies)}
    if isinstance(condition, RoleCondition):
        return {"kind": condition.kind, "roles": sorted(condition.roles)}
    if isinstance(condition, DepartmentCondition):
        return {"kind": condition.kind, "departments": sorted(condition.departments)}
    raise TypeError(f"Unknown condition type: {type(condition).__name__}")


def condition_from_json(data: dict[str, Any]) -> TriggerCondition:
    """Decode one tagged condition.

    Raises:
        ValueError: on an unknown ``kind`` or a malformed amount.
    """
    kind = data.get("kind")
    if kind == AmountRangeCondition.kind:
        return AmountRangeCondition(
            min_amount=_to_decimal(data.get("min_amount")),
            max_amount=_to_decimal(data.get("max_amount")),
        )
    if kind == CurrencyCondition.kind:
        return CurrencyCondition(
            currencies=frozenset(str(c).upper() for c in data.get("currencies") or ()),
        )
    if kind == RoleCondition.kind:
        return RoleCondition(roles=frozenset(data.get("roles") or ()))
    if kind == DepartmentCondition.kind:
        return DepartmentCondition(departments=frozenset(data.get("departments") or ()))
    raise ValueError(f"Unknown condition kind: {kind!r}")


def conditions_to_json(conditions: TriggerConditions) -> list[dict[str, Any]]:
    return [condition_to_json(c) for c in conditions.conditions]


def conditions_from_json(data: list[dict[str, Any]] | None) -> TriggerConditions:
    return TriggerConditions(
        conditions=tuple(condition_from_json(item) for item in data or ()),
    )
