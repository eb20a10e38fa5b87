"""Declarative rule compilation.

Turns stripped rule entries (as returned by the operation extractor) into
functional rules, and condition definitions into registry predicates.

Declarative keys are resolved through the RuleRegistry, so
`register_builtin_rules()` must have been called at startup.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from ruleforge.validation import rules
from ruleforge.validation.aggregator import RuleAggregator
from ruleforge.validation.operations import ConditionRef, RuleSetError, parse_condition_ref
from ruleforge.validation.registry import RuleRegistry
from ruleforge.validation.types import (
    ENTITY_TARGETS,
    ConditionCallable,
    Rule,
    ValidationContext,
)
from ruleforge.validation.validator import Validator, create_validator

logger = logging.getLogger(__name__)

# Entry keys that configure the entry rather than name a rule
_OPTION_KEYS = ("message", "messageId", "conditions", "operations")

# Accepted in rule sets, enforced by the persistence layer
_IGNORED_KEYS = ("unique",)


def _unwrap(param: Any) -> tuple[Any, str | None, str | None]:
    """Split `{value, message, messageId}` into its parts."""
    if isinstance(param, Mapping) and "value" in param:
        return param["value"], param.get("message"), param.get("messageId")
    return param, None, None


def compile_entry(entry: Mapping[str, Any]) -> Rule | None:
    """Compile one stripped declarative entry into a rule.

    Every declarative key becomes a rule; several keys are combined with
    `all_of` so that all failures are reported. Entry-level `message` and
    `messageId` apply to every key that does not carry its own. An attached
    condition reference gates the compiled rule.

    Returns:
        The rule, or None if the entry declares nothing to check

    Raises:
        RuleSetError: If the entry uses an unknown key or an invalid parameter
    """
    message = entry.get("message")
    message_id = entry.get("messageId")

    compiled: list[Rule] = []
    for key, raw in entry.items():
        if key in _OPTION_KEYS:
            continue
        if key in _IGNORED_KEYS:
            logger.debug("Skipping '%s' rule; not enforced by the validation engine", key)
            continue

        param, key_message, key_message_id = _unwrap(raw)
        try:
            rule = RuleRegistry.create(
                key,
                param,
                message=key_message or message,
                message_id=key_message_id or message_id,
            )
        except (ValueError, TypeError) as e:
            raise RuleSetError(f"Invalid '{key}' rule: {e}") from e

        if rule is not None:
            compiled.append(rule)

    if not compiled:
        return None

    rule = compiled[0] if len(compiled) == 1 else rules.all_of(compiled)

    ref = entry.get("conditions")
    if ref is not None:
        if not isinstance(ref, ConditionRef):
            ref = parse_condition_ref(ref)
        rule = replace(rule, conditions=ref.to_spec())

    return rule


def compile_field(
    entries: Sequence[Mapping[str, Any]],
    validator: Validator | None = None,
) -> Rule | None:
    """Compile all entries of one field into a single rule.

    Entries run in declaration order, each behind its own conditional gate,
    and their errors are concatenated.
    """
    aggregator = RuleAggregator(validator)
    count = 0
    for entry in entries:
        rule = compile_entry(entry)
        if rule is not None:
            aggregator.add(rule)
            count += 1

    if count == 0:
        return None
    return aggregator.composite(honor_conditions=True)


def _compile_field_options(options: Any) -> Rule | None:
    if isinstance(options, Mapping):
        return compile_entry(options)
    if isinstance(options, Sequence) and not isinstance(options, str):
        return compile_field(options)
    raise RuleSetError(f"Invalid condition field rules {options!r}")


def compile_condition(
    definition: Any,
    validator: Validator | None = None,
) -> ConditionCallable:
    """Compile a named condition definition into a registry predicate.

    A callable is used as-is. A mapping of target -> field -> rule options,
    e.g. `{"record": {"userId": {"neq": ""}}}`, holds when every listed field
    of the matching bag in the context data passes its rules.

    Raises:
        RuleSetError: If the definition is neither callable nor a mapping of
            entity targets
    """
    if isinstance(definition, ConditionCallable):
        return definition
    if callable(definition):
        return ConditionCallable(definition)
    if not isinstance(definition, Mapping):
        raise RuleSetError(f"Invalid condition definition {definition!r}")

    validator = validator or create_validator()
    checks: list[tuple[str, str, Rule]] = []

    for target, fields in definition.items():
        if target not in ENTITY_TARGETS:
            raise RuleSetError(
                f"Unknown condition target '{target}'. "
                f"Expected one of: {', '.join(ENTITY_TARGETS)}"
            )
        if not isinstance(fields, Mapping):
            raise RuleSetError(f"Condition rules for '{target}' must be a mapping")
        for field_name, options in fields.items():
            rule = _compile_field_options(options)
            if rule is not None:
                checks.append((target, field_name, rule))

    async def holds(value: Any, data: Any) -> bool:
        bags = data if isinstance(data, Mapping) else {}
        context = ValidationContext(data=data)
        for target, field_name, rule in checks:
            bag = bags.get(target)
            field_value = bag.get(field_name) if isinstance(bag, Mapping) else None
            result = await validator.validate(field_value, rule, context)
            if not result.valid:
                return False
        return True

    return ConditionCallable(holds)


def compile_conditions(
    definitions: Mapping[str, Any] | None,
    validator: Validator | None = None,
) -> dict[str, ConditionCallable]:
    """Compile every named condition of a rule set."""
    return {
        name: compile_condition(definition, validator)
        for name, definition in (definitions or {}).items()
    }
