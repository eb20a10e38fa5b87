"""RuleForge validation engine.

This package provides the layers below the target validators:
- Types: results, errors, conditions, contexts and rules
- Core validator: runs one rule on one value, with conditional gating
- Rule library: parameterized rule constructors and combinators
- Aggregator: composes several rules into one
- Operation extraction and declarative compilation of rule sets

Usage:
    from ruleforge.validation import register_builtin_rules

    # At application startup
    register_builtin_rules()
"""

from ruleforge.validation.aggregator import RuleAggregator, create_rule_aggregator
from ruleforge.validation.conditions import evaluate_condition
from ruleforge.validation.declarative import (
    compile_condition,
    compile_conditions,
    compile_entry,
    compile_field,
)
from ruleforge.validation.messages import (
    DEFAULT_MESSAGES,
    MessageInterpolator,
    entity_message_ids,
    http_message_ids,
    message_ids_for_prefix,
)
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
)
from ruleforge.validation.registry import RuleRegistry, register_builtin_rules
from ruleforge.validation.shapes import object_schema
from ruleforge.validation.types import (
    ConditionCallable,
    ConditionsSpec,
    ConditionValue,
    NamedCondition,
    PredicateCondition,
    Rule,
    Scope,
    ValidationContext,
    ValidationError,
    ValidationResult,
    ValidationRule,
)
from ruleforge.validation.validator import Validator, create_validator

__all__ = [
    # Types
    "ConditionCallable",
    "ConditionsSpec",
    "ConditionValue",
    "NamedCondition",
    "PredicateCondition",
    "Rule",
    "Scope",
    "ValidationContext",
    "ValidationError",
    "ValidationResult",
    "ValidationRule",
    # Core
    "Validator",
    "create_validator",
    "evaluate_condition",
    # Composition
    "RuleAggregator",
    "create_rule_aggregator",
    "object_schema",
    # Registry
    "RuleRegistry",
    "register_builtin_rules",
    # Operations
    "ConditionRef",
    "ConditionalTag",
    "OperationNameTag",
    "OperationValidations",
    "RuleSetError",
    "WildcardTag",
    "extract_operation_validations",
    "parse_condition_ref",
    "parse_operation_tag",
    # Declarative
    "compile_condition",
    "compile_conditions",
    "compile_entry",
    "compile_field",
    # Messages
    "DEFAULT_MESSAGES",
    "MessageInterpolator",
    "entity_message_ids",
    "http_message_ids",
    "message_ids_for_prefix",
]
