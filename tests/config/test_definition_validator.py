"""
Tests for workflow definition validation.

Errors block saving and loading; warnings are reported but allowed.
"""

from decimal import Decimal

from approval_config.validator import WorkflowValidationResult, validate_definition
from approval_kernel.domain.workflow import (
    AmountRangeCondition,
    CurrencyCondition,
    DepartmentCondition,
    RoleCondition,
    TriggerConditions,
)
from tests.conftest import make_definition


def with_conditions(*conditions):
    return make_definition(conditions=TriggerConditions(conditions=conditions))


class TestValidationResult:

    def test_starts_valid(self):
        result = WorkflowValidationResult()
        assert result.is_valid

    def test_warnings_do_not_invalidate(self):
        result = WorkflowValidationResult()
        result.add_warning("careful")
        assert result.is_valid
        result.add_error("broken")
        assert not result.is_valid


class TestDefinitionRules:

    def test_valid_definition(self):
        result = validate_definition(make_definition(
            conditions=TriggerConditions.of(min_amount=100, max_amount=500, currencies=["USD"]),
        ))
        assert result.is_valid
        assert result.warnings == []

    def test_blank_name_and_type(self):
        result = validate_definition(make_definition(name="  ", target_type=""))
        assert result.errors == [
            "Workflow name must not be empty",
            "Workflow target_type must not be empty",
        ]

    def test_active_without_steps_is_error(self):
        result = validate_definition(make_definition(step_names=()))
        assert result.errors == ["Active workflow must have at least one step"]

    def test_inactive_without_steps_is_warning(self):
        result = validate_definition(make_definition(step_names=(), is_active=False))
        assert result.is_valid
        assert result.warnings == ["Workflow has no steps"]

    def test_blank_step_name(self):
        result = validate_definition(make_definition(step_names=("Manager", "")))
        assert result.errors == ["Step 2 has an empty name"]

    def test_duplicate_step_names_warn(self):
        result = validate_definition(make_definition(step_names=("Review", "Review")))
        assert result.is_valid
        assert result.warnings == ["Step name 'Review' is used 2 times"]

    def test_all_problems_collected(self):
        definition = make_definition(name="", step_names=("",))
        assert len(validate_definition(definition).errors) == 2


class TestConditionRules:

    def test_duplicate_kinds(self):
        result = validate_definition(with_conditions(
            RoleCondition(roles=frozenset({"a"})),
            RoleCondition(roles=frozenset({"b"})),
        ))
        assert result.errors == ["Condition 'role' appears 2 times"]

    def test_negative_amounts(self):
        result = validate_definition(with_conditions(
            AmountRangeCondition(min_amount=Decimal("-1"), max_amount=Decimal("-5")),
        ))
        assert "min_amount must not be negative: -1" in result.errors
        assert "max_amount must not be negative: -5" in result.errors

    def test_inverted_range(self):
        result = validate_definition(with_conditions(
            AmountRangeCondition(min_amount=Decimal("10"), max_amount=Decimal("1")),
        ))
        assert result.errors == ["min_amount 10 is greater than max_amount 1"]

    def test_equal_bounds_allowed(self):
        result = validate_definition(with_conditions(
            AmountRangeCondition(min_amount=Decimal("10"), max_amount=Decimal("10")),
        ))
        assert result.is_valid

    def test_unbounded_amount_warns(self):
        result = validate_definition(with_conditions(AmountRangeCondition()))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_currency_codes(self):
        result = validate_definition(with_conditions(
            CurrencyCondition(currencies=frozenset({"USD", "EURO", "us"})),
        ))
        assert result.errors == [
            "Invalid currency code: 'EURO'",
            "Invalid currency code: 'us'",
        ]

    def test_empty_sets_warn(self):
        result = validate_definition(with_conditions(
            CurrencyCondition(currencies=frozenset()),
            RoleCondition(roles=frozenset()),
            DepartmentCondition(departments=frozenset()),
        ))
        assert result.is_valid
        assert len(result.warnings) == 3

