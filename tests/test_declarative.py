"""Tests for the rule registry and declarative compilation."""

import pytest

from ruleforge.validation.declarative import (
    compile_condition,
    compile_conditions,
    compile_entry,
    compile_field,
)
from ruleforge.validation.operations import ConditionRef, RuleSetError
from ruleforge.validation.registry import RuleRegistry, register_builtin_rules
from ruleforge.validation.rules import custom
from ruleforge.validation.types import (
    ConditionCallable,
    Scope,
    ValidationContext,
    condition_registry,
)
from ruleforge.validation.validator import create_validator


@pytest.fixture(autouse=True)
def setup_registry():
    """Register built-in rules before each test."""
    RuleRegistry.clear()
    register_builtin_rules()
    yield
    RuleRegistry.clear()


@pytest.fixture
def validator():
    return create_validator()


# =============================================================================
# Registry
# =============================================================================


class TestRuleRegistry:
    def test_builtins_registered(self):
        assert RuleRegistry.list_registered() == sorted(
            [
                "custom",
                "datatype",
                "eq",
                "gt",
                "gte",
                "inList",
                "lt",
                "lte",
                "maxLength",
                "minLength",
                "neq",
                "notInList",
                "pattern",
                "required",
            ]
        )

    def test_unknown_key_raises(self):
        with pytest.raises(ValueError, match="not registered"):
            RuleRegistry.create("isEven", True)

    def test_register_is_idempotent(self):
        original = RuleRegistry._factories["required"]
        RuleRegistry.register("required", lambda p, m, i: None)
        assert RuleRegistry._factories["required"] is original

    def test_required_false_builds_nothing(self):
        assert RuleRegistry.create("required", False) is None

    @pytest.mark.asyncio
    async def test_custom_registration(self):
        RuleRegistry.register(
            "isEven",
            lambda param, message, message_id: custom(
                lambda v, ctx: v % 2 == 0, message=message
            ),
        )
        rule = RuleRegistry.create("isEven", True, message="Must be even")
        result = await rule.validate(3, ValidationContext())
        assert result.errors[0].message == "Must be even"

    def test_custom_requires_callable(self):
        with pytest.raises(ValueError):
            RuleRegistry.create("custom", "not callable")


# =============================================================================
# Entries and Fields
# =============================================================================


class TestCompileEntry:
    @pytest.mark.asyncio
    async def test_multiple_keys_report_every_failure(self):
        rule = compile_entry({"minLength": 5, "pattern": r"^\d+$"})
        result = await rule.validate("ab", ValidationContext())
        assert [e.message_ids for e in result.errors] == [
            ("validation.minlength",),
            ("validation.pattern",),
        ]

    @pytest.mark.asyncio
    async def test_entry_message_applies_to_keys(self):
        rule = compile_entry({"maxLength": 2, "message": "Too long", "messageId": "name.long"})
        result = await rule.validate("abc", ValidationContext())
        assert result.errors[0].message == "Too long"
        assert result.errors[0].message_ids == ("name.long",)

    @pytest.mark.asyncio
    async def test_complex_value_carries_own_message(self):
        rule = compile_entry({"minLength": {"value": 3, "message": "Min three"}})
        result = await rule.validate("ab", ValidationContext())
        assert result.errors[0].message == "Min three"

    def test_empty_entry_compiles_to_none(self):
        assert compile_entry({}) is None
        assert compile_entry({"required": False}) is None

    def test_unique_is_skipped(self):
        assert compile_entry({"unique": True}) is None

    def test_unknown_key_raises_rule_set_error(self):
        with pytest.raises(RuleSetError, match="isEven"):
            compile_entry({"isEven": True})

    def test_invalid_datatype_raises_rule_set_error(self):
        with pytest.raises(RuleSetError):
            compile_entry({"datatype": "colour"})

    def test_condition_ref_becomes_gate(self):
        rule = compile_entry({"required": True, "conditions": ConditionRef(("isOwner",))})
        assert rule.conditions.scope is Scope.ANY
        assert [c.name for c in rule.conditions.conditions] == ["isOwner"]


class TestCompileField:
    @pytest.mark.asyncio
    async def test_entries_keep_their_own_gates(self, validator):
        rule = compile_field(
            [
                {"maxLength": 10},
                {"required": True, "conditions": ConditionRef(("isOwner",))},
            ]
        )
        owner = ValidationContext(
            conditions=condition_registry({"isOwner": lambda v, d: True})
        )
        stranger = ValidationContext(
            conditions=condition_registry({"isOwner": lambda v, d: False})
        )

        assert (await validator.validate(None, rule, owner)).valid is False
        assert (await validator.validate(None, rule, stranger)).valid is True

    def test_no_rules_compiles_to_none(self):
        assert compile_field([{}, {"unique": True}]) is None


# =============================================================================
# Conditions
# =============================================================================


class TestCompileCondition:
    def test_callable_is_wrapped(self):
        fn = lambda v, d: True  # noqa: E731
        assert compile_condition(fn) == ConditionCallable(fn)

    @pytest.mark.asyncio
    async def test_field_rules_definition(self):
        condition = compile_condition({"record": {"userId": {"eq": "u1"}}})

        assert await condition.fn(None, {"record": {"userId": "u1"}}) is True
        assert await condition.fn(None, {"record": {"userId": "u2"}}) is False

    @pytest.mark.asyncio
    async def test_multiple_targets_must_all_hold(self):
        condition = compile_condition(
            {
                "actor": {"role": {"inList": ["admin"]}},
                "input": {"status": [{"required": True}, {"neq": "locked"}]},
            }
        )
        data = {"actor": {"role": "admin"}, "input": {"status": "open"}}

        assert await condition.fn(None, data) is True
        assert await condition.fn(None, {**data, "input": {"status": "locked"}}) is False

    def test_unknown_target_raises(self):
        with pytest.raises(RuleSetError, match="Unknown condition target"):
            compile_condition({"body": {"a": {"required": True}}})

    def test_invalid_definition_raises(self):
        with pytest.raises(RuleSetError):
            compile_condition(42)

    def test_compile_conditions(self):
        compiled = compile_conditions({"isOwner": {"record": {"userId": {"required": True}}}})
        assert set(compiled) == {"isOwner"}
        assert isinstance(compiled["isOwner"], ConditionCallable)
