"""
Tests for ruleforge.metadata (rule-set checking and loading)

Covers:
  - check_rule_set()        — schema errors and undefined-condition warnings
  - check_rule_set_file()   — YAML parse errors, empty files
  - load_rule_set()         — documents, extraction and schema building
"""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from ruleforge.metadata.loader import RuleSetDocument, load_rule_set
from ruleforge.metadata.validator import (
    RuleSetIssue,
    check_rule_set,
    check_rule_set_file,
)
from ruleforge.validation.operations import ConditionRef, RuleSetError
from ruleforge.validation.registry import RuleRegistry, register_builtin_rules
from ruleforge.validation.types import Scope

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def setup_registry():
    RuleRegistry.clear()
    register_builtin_rules()
    yield
    RuleRegistry.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data))
    return path


def _write_raw(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


# ---------------------------------------------------------------------------
# check_rule_set
# ---------------------------------------------------------------------------


class TestCheckRuleSet:
    def test_fixture_is_valid(self):
        assert check_rule_set_file(FIXTURES / "user.yaml") == []

    def test_unknown_top_level_key(self):
        issues = check_rule_set({"bodyRules": {}})
        assert len(issues) == 1
        assert "bodyRules" in issues[0].message

    def test_unknown_rule_key_reports_path(self):
        doc = {"inputRules": {"email": [{"operations": ["*"], "isEven": True}]}}
        issues = check_rule_set(doc)
        assert issues
        assert issues[0].path == "inputRules/email[0]"

    def test_bad_scope(self):
        doc = {
            "conditions": {"a": {"actor": {"id": {"required": True}}}},
            "inputRules": {
                "email": [{"operations": [["update", [["a"], "sometimes"]]], "required": True}]
            },
        }
        assert any(i.severity == "error" for i in check_rule_set(doc))

    def test_bad_datatype(self):
        doc = {"inputRules": {"email": [{"operations": ["*"], "datatype": "colour"}]}}
        assert check_rule_set(doc)

    def test_condition_definition_targets(self):
        doc = {"conditions": {"a": {"body": {"id": {"required": True}}}}}
        assert check_rule_set(doc)

    def test_undefined_condition_is_warning(self):
        doc = {"inputRules": {"email": [{"operations": [["update", ["isOwner"]]], "required": True}]}}

        issues = check_rule_set(doc)

        assert len(issues) == 1
        assert issues[0].severity == "warning"
        assert "isOwner" in issues[0].message
        assert issues[0].path == "inputRules/email[0]/operations"

    def test_not_a_mapping(self):
        issues = check_rule_set(["a"])
        assert issues[0].message == "Rule set must be a mapping"

    def test_issue_str(self):
        issue = RuleSetIssue(message="bad", path="inputRules/email", file=Path("user.yaml"))
        assert str(issue) == "[ERROR] user.yaml at inputRules/email: bad"


class TestCheckRuleSetFile:
    def test_yaml_parse_error(self, tmp_path):
        path = _write_raw(tmp_path / "broken.yaml", "inputRules: [unclosed\n")
        issues = check_rule_set_file(path)
        assert "YAML parse error" in issues[0].message

    def test_empty_file(self, tmp_path):
        path = _write_raw(tmp_path / "empty.yaml", "\n")
        issues = check_rule_set_file(path)
        assert "empty" in issues[0].message


# ---------------------------------------------------------------------------
# load_rule_set
# ---------------------------------------------------------------------------


class TestLoadRuleSet:
    def test_load_fixture(self):
        document = load_rule_set(FIXTURES / "user.yaml")

        assert isinstance(document, RuleSetDocument)
        assert document.entity == "user"
        assert set(document.validations) == {
            "conditions",
            "actorRules",
            "inputRules",
            "recordRules",
        }
        assert document.warnings == []

    def test_entity_defaults_to_file_stem(self, tmp_path):
        path = _write_yaml(
            tmp_path / "company.yaml",
            {"inputRules": {"name": [{"operations": ["*"], "required": True}]}},
        )
        assert load_rule_set(path).entity == "company"

    def test_invalid_document_raises(self, tmp_path):
        path = _write_yaml(tmp_path / "bad.yaml", {"bodyRules": {}})
        with pytest.raises(RuleSetError, match="Invalid rule set"):
            load_rule_set(path)

    def test_non_mapping_raises(self, tmp_path):
        path = _write_raw(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(RuleSetError, match="must contain a mapping"):
            load_rule_set(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rule_set(tmp_path / "missing.yaml")

    def test_extract_mapping_form_operations(self):
        document = load_rule_set(FIXTURES / "user.yaml")

        extracted = document.extract("update")

        assert extracted.op_validations["inputRules"]["role"] == [
            {
                "inList": {"value": ["admin", "member"], "message": "Role must be admin or member"},
                "conditions": ConditionRef(("isAdmin",), Scope.ANY),
            }
        ]
        assert extracted.op_validations["inputRules"]["nickname"][0]["conditions"] == (
            ConditionRef(("isOwner", "isAdmin"), Scope.ANY)
        )

    def test_schema_for_operation(self):
        schema = load_rule_set(FIXTURES / "user.yaml").schema_for("delete")
        assert schema.name == "user"
        assert schema.applies_to == ("delete",)
        assert list(schema.fields("record")) == ["status"]
