"""Tests for operation rule extraction."""

import logging

import pytest

from ruleforge.validation.operations import (
    ConditionalTag,
    ConditionRef,
    OperationNameTag,
    OperationValidations,
    RuleSetError,
    WildcardTag,
    extract_operation_validations,
    parse_condition_ref,
    parse_operation_tag,
    parse_operations,
)
from ruleforge.validation.types import ConditionsSpec, NamedCondition, Scope

EMPTY = {"actorRules": {}, "inputRules": {}, "recordRules": {}}


class TestParseTags:
    def test_wildcard(self):
        assert parse_operation_tag("*") == WildcardTag()

    def test_operation_name(self):
        assert parse_operation_tag("create") == OperationNameTag("create")

    def test_conditional_with_names_defaults_to_any(self):
        tag = parse_operation_tag(["update", ["isOwner", "isAdmin"]])
        assert tag == ConditionalTag("update", ConditionRef(("isOwner", "isAdmin"), Scope.ANY))

    def test_conditional_with_scope(self):
        tag = parse_operation_tag(["update", [["isOwner"], "all"]])
        assert tag == ConditionalTag("update", ConditionRef(("isOwner",), Scope.ALL))

    def test_three_element_form(self):
        tag = parse_operation_tag(["update", ["isOwner"], "none"])
        assert tag.ref == ConditionRef(("isOwner",), Scope.NONE)

    def test_single_element_form_has_no_conditions(self):
        assert parse_operation_tag(["update"]) == ConditionalTag("update")

    def test_mapping_form(self):
        tags = parse_operations({"update": [{"conditions": ["isOwner"], "scope": "all"}]})
        assert tags == [ConditionalTag("update", ConditionRef(("isOwner",), Scope.ALL))]

    def test_condition_ref_mapping(self):
        ref = parse_condition_ref({"conditions": ["a"]})
        assert ref == ConditionRef(("a",), Scope.ANY)

    def test_condition_ref_to_spec(self):
        spec = ConditionRef(("a", "b"), Scope.NONE).to_spec()
        assert spec == ConditionsSpec(
            conditions=(NamedCondition("a"), NamedCondition("b")), scope=Scope.NONE
        )

    @pytest.mark.parametrize("raw", [42, [], [1, 2], ["update", ["a"], "sometimes"]])
    def test_invalid_tags_raise(self, raw):
        with pytest.raises(RuleSetError):
            parse_operation_tag(raw)

    def test_conditional_wildcard_matches_everything(self):
        tag = ConditionalTag("*", ConditionRef(("a",)))
        assert tag.matches("create") and tag.matches("delete")


class TestExtract:
    def test_empty_rule_set(self):
        result = extract_operation_validations("create", {})
        assert result == OperationValidations(op_validations=EMPTY, conditions=None)

    def test_none_rule_set(self):
        result = extract_operation_validations("create", None)
        assert result.op_validations == EMPTY

    def test_single_matching_entry(self):
        result = extract_operation_validations(
            "create",
            {"actorRules": {"id": [{"operations": ["create"], "required": True}]}},
        )
        assert result.op_validations == {
            "actorRules": {"id": [{"required": True}]},
            "inputRules": {},
            "recordRules": {},
        }
        assert result.conditions is None

    @pytest.mark.parametrize("operation", ["update", "delete", "get"])
    def test_wildcard_matches_every_operation(self, operation):
        rule_set = {"inputRules": {"name": [{"operations": ["*"], "maxLength": 40}]}}
        result = extract_operation_validations(operation, rule_set)
        assert result.op_validations["inputRules"] == {"name": [{"maxLength": 40}]}

    def test_conditions_attach_only_to_matching_tag(self):
        rule_set = {
            "inputRules": {
                "email": [
                    {
                        "operations": ["create", ["update", ["isOwner"]]],
                        "required": True,
                    }
                ]
            }
        }

        create = extract_operation_validations("create", rule_set)
        update = extract_operation_validations("update", rule_set)

        assert create.op_validations["inputRules"]["email"] == [{"required": True}]
        assert update.op_validations["inputRules"]["email"] == [
            {"required": True, "conditions": ConditionRef(("isOwner",), Scope.ANY)}
        ]

    def test_non_matching_fields_are_omitted(self):
        rule_set = {
            "inputRules": {
                "email": [{"operations": ["create"], "required": True}],
                "name": [{"operations": ["update"], "required": True}],
            }
        }
        result = extract_operation_validations("create", rule_set)
        assert list(result.op_validations["inputRules"]) == ["email"]

    def test_entries_are_kept_separate_in_order(self):
        rule_set = {
            "recordRules": {
                "status": [
                    {"operations": ["*"], "required": True},
                    {"operations": ["update"], "inList": ["draft", "done"]},
                ]
            }
        }
        result = extract_operation_validations("update", rule_set)
        assert result.op_validations["recordRules"]["status"] == [
            {"required": True},
            {"inList": ["draft", "done"]},
        ]

    def test_identical_entries_are_not_merged(self):
        rule_set = {
            "inputRules": {
                "email": [
                    {"operations": ["create"], "required": True},
                    {"operations": ["*"], "required": True},
                ]
            }
        }
        result = extract_operation_validations("create", rule_set)
        assert result.op_validations["inputRules"]["email"] == [
            {"required": True},
            {"required": True},
        ]

    def test_one_entry_matching_twice_is_emitted_once(self):
        rule_set = {"inputRules": {"email": [{"operations": ["create", "*"], "required": True}]}}
        result = extract_operation_validations("create", rule_set)
        assert result.op_validations["inputRules"]["email"] == [{"required": True}]

    def test_entry_without_operations_is_dropped(self):
        rule_set = {"inputRules": {"email": [{"required": True}]}}
        result = extract_operation_validations("create", rule_set)
        assert result.op_validations == EMPTY

    def test_entry_with_only_operations_is_emitted_empty(self, caplog):
        rule_set = {"inputRules": {"email": [{"operations": ["create"]}]}}

        with caplog.at_level(logging.WARNING):
            result = extract_operation_validations("create", rule_set)

        assert result.op_validations["inputRules"] == {"email": [{}]}
        assert "no validations besides operations" in caplog.text

    def test_source_entries_are_not_modified(self):
        entry = {"operations": ["create"], "required": True}
        extract_operation_validations("create", {"inputRules": {"email": [entry]}})
        assert entry == {"operations": ["create"], "required": True}

    def test_conditions_are_passed_through(self):
        conditions = {"isOwner": {"record": {"userId": {"neq": ""}}}}
        result = extract_operation_validations("create", {"conditions": conditions})
        assert result.conditions == conditions

    def test_unknown_category_raises(self):
        with pytest.raises(RuleSetError, match="Unknown rule categories"):
            extract_operation_validations("create", {"bodyRules": {}})

    def test_non_list_entries_raise(self):
        with pytest.raises(RuleSetError):
            extract_operation_validations(
                "create", {"inputRules": {"email": {"operations": ["create"]}}}
            )
