"""
metadata/validator.py — JSON Schema validation for RuleForge rule-set files.

Usage:
    from ruleforge.metadata.validator import check_rule_set, check_rule_set_file

    issues = check_rule_set_file(Path("rules/user.yaml"))
    for issue in issues:
        print(issue)

Besides the structural schema check, condition names referenced by operation
tags are cross-checked against the document's `conditions` and reported as
warnings when undefined (they resolve to False at validation time).
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from ruleforge.validation.operations import (
    RULE_CATEGORIES,
    ConditionalTag,
    RuleSetError,
    parse_operations,
)
from ruleforge.validation.rules import DATATYPE_CHECKS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def _or_complex(schema: dict[str, Any]) -> dict[str, Any]:
    """Allow `schema` or the `{value, message, messageId}` form."""
    return {"anyOf": [schema, {"$ref": "#/$defs/complexValue"}]}


_RULE_KEYS: dict[str, Any] = {
    "required": _or_complex({"type": "boolean"}),
    "minLength": _or_complex({"type": "integer", "minimum": 0}),
    "maxLength": _or_complex({"type": "integer", "minimum": 0}),
    "pattern": _or_complex({"type": "string"}),
    "datatype": _or_complex({"enum": sorted(DATATYPE_CHECKS)}),
    "eq": {},
    "neq": {},
    "gt": {},
    "gte": {},
    "lt": {},
    "lte": {},
    "inList": _or_complex({"type": "array"}),
    "notInList": _or_complex({"type": "array"}),
    "unique": {"type": "boolean"},
    "message": {"type": "string"},
    "messageId": {"type": "string"},
}

RULESET_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://ruleforge.dev/schemas/ruleset.schema.json",
    "title": "RuleForge rule set",
    "type": "object",
    "properties": {
        "entity": {"type": "string", "minLength": 1},
        "conditions": {
            "type": "object",
            "additionalProperties": {"$ref": "#/$defs/conditionDefinition"},
        },
        "actorRules": {"$ref": "#/$defs/category"},
        "inputRules": {"$ref": "#/$defs/category"},
        "recordRules": {"$ref": "#/$defs/category"},
    },
    "additionalProperties": False,
    "$defs": {
        "scope": {"enum": ["all", "any", "none"]},
        "names": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "complexValue": {
            "type": "object",
            "properties": {
                "value": {},
                "message": {"type": "string"},
                "messageId": {"type": "string"},
            },
            "required": ["value"],
            "additionalProperties": False,
        },
        "conditionRef": {
            "oneOf": [
                {"$ref": "#/$defs/names"},
                {
                    "type": "array",
                    "prefixItems": [{"$ref": "#/$defs/names"}, {"$ref": "#/$defs/scope"}],
                    "minItems": 2,
                    "maxItems": 2,
                },
            ]
        },
        "operationTag": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "array",
                    "prefixItems": [{"type": "string"}, {"$ref": "#/$defs/conditionRef"}],
                    "minItems": 1,
                    "maxItems": 2,
                },
                {
                    "type": "array",
                    "prefixItems": [
                        {"type": "string"},
                        {"$ref": "#/$defs/names"},
                        {"$ref": "#/$defs/scope"},
                    ],
                    "minItems": 3,
                    "maxItems": 3,
                },
            ]
        },
        "operations": {
            "anyOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"$ref": "#/$defs/operationTag"}},
                {
                    "type": "object",
                    "additionalProperties": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "conditions": {"$ref": "#/$defs/names"},
                                "scope": {"$ref": "#/$defs/scope"},
                            },
                            "required": ["conditions"],
                            "additionalProperties": False,
                        },
                    },
                },
            ]
        },
        "fieldRules": {
            "type": "object",
            "properties": _RULE_KEYS,
            "additionalProperties": False,
        },
        "entry": {
            "type": "object",
            "properties": {**_RULE_KEYS, "operations": {"$ref": "#/$defs/operations"}},
            "additionalProperties": False,
        },
        "category": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"$ref": "#/$defs/entry"}},
        },
        "conditionDefinition": {
            "type": "object",
            "propertyNames": {"enum": ["actor", "input", "record"]},
            "additionalProperties": {
                "type": "object",
                "additionalProperties": {
                    "anyOf": [
                        {"$ref": "#/$defs/fieldRules"},
                        {"type": "array", "items": {"$ref": "#/$defs/fieldRules"}},
                    ]
                },
            },
        },
    },
}


# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------


@dataclass
class RuleSetIssue:
    """A single finding for a rule-set document."""

    message: str
    path: str = ""          # e.g. "inputRules/email[0]/operations"
    severity: str = "error" # "error" | "warning"
    file: Path | None = None

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        source = f" {self.file}" if self.file else ""
        return f"[{self.severity.upper()}]{source}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _referenced_conditions(doc: Mapping[str, Any]) -> Iterator[tuple[str, str]]:
    """Yield (path, condition name) for every condition an operation tag references."""
    for category in RULE_CATEGORIES:
        for field_name, entries in (doc.get(category) or {}).items():
            for index, entry in enumerate(entries or []):
                if not isinstance(entry, Mapping) or "operations" not in entry:
                    continue
                path = f"{category}/{field_name}[{index}]/operations"
                for tag in parse_operations(entry["operations"]):
                    if isinstance(tag, ConditionalTag) and tag.ref is not None:
                        for name in tag.ref.names:
                            yield path, name


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def check_rule_set(doc: Any, *, file: Path | None = None) -> list[RuleSetIssue]:
    """
    Validate a parsed rule-set document.

    Returns:
        A list of :class:`RuleSetIssue` objects (empty on success).
    """
    if not isinstance(doc, Mapping):
        return [RuleSetIssue(message="Rule set must be a mapping", file=file)]

    validator = Draft202012Validator(RULESET_SCHEMA)
    issues = [
        RuleSetIssue(message=error.message, path=_json_path(error), file=file)
        for error in sorted(validator.iter_errors(doc), key=_json_path)
    ]
    if issues:
        return issues

    defined = set((doc.get("conditions") or {}).keys())
    try:
        for path, name in _referenced_conditions(doc):
            if name not in defined:
                issues.append(
                    RuleSetIssue(
                        message=f"Condition '{name}' is not defined in this rule set",
                        path=path,
                        severity="warning",
                        file=file,
                    )
                )
    except RuleSetError as exc:
        issues.append(RuleSetIssue(message=str(exc), file=file))

    return issues


def check_rule_set_file(yaml_path: Path) -> list[RuleSetIssue]:
    """Parse and validate a rule-set YAML file."""
    logger.debug("Checking rule set %s", yaml_path)
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [RuleSetIssue(message=f"YAML parse error: {exc}", file=yaml_path)]

    if raw is None:
        return [
            RuleSetIssue(message="File is empty or contains only whitespace", file=yaml_path)
        ]

    return check_rule_set(raw, file=yaml_path)
