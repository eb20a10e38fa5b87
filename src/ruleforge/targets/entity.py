"""Entity validation.

Validates entity mutations over the actor/input/record targets, either from
a hand-built schema or from a declarative multi-operation rule set:

    schema = build_entity_schema("create", rule_set, entity_name="user")
    result = await EntityValidator().validate(
        schema, operation="create", input={"email": "a@b.c"}
    )
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ruleforge.targets.base import TargetSchema, TargetSchemaBuilder, TargetValidator
from ruleforge.validation.declarative import compile_conditions, compile_field
from ruleforge.validation.messages import entity_message_ids
from ruleforge.validation.operations import extract_operation_validations
from ruleforge.validation.types import (
    ENTITY_TARGETS,
    ValidationContext,
    ValidationResult,
)
from ruleforge.validation.validator import Validator

logger = logging.getLogger(__name__)

# Rule-set category -> target
CATEGORY_TARGETS: dict[str, str] = {
    "actorRules": "actor",
    "inputRules": "input",
    "recordRules": "record",
}


class EntityValidationBuilder(TargetSchemaBuilder):
    """Builds an entity validation schema."""

    target_names = ENTITY_TARGETS

    def actor(self, name: str, rule: Any) -> EntityValidationBuilder:
        return self.add_field("actor", name, rule)

    def input(self, name: str, rule: Any) -> EntityValidationBuilder:
        return self.add_field("input", name, rule)

    def record(self, name: str, rule: Any) -> EntityValidationBuilder:
        return self.add_field("record", name, rule)

    def for_operations(self, *operations: str) -> EntityValidationBuilder:
        return self._restrict(operations)


def entity(name: str | None = None) -> EntityValidationBuilder:
    """Start building an entity validation schema."""
    return EntityValidationBuilder(name)


class EntityValidator(TargetValidator):
    """Target validator for the actor/input/record targets."""

    target_names = ENTITY_TARGETS

    def expand_message_ids(
        self,
        schema: TargetSchema,
        target: str,
        field_name: str,
        message_ids: tuple[str, ...],
    ) -> tuple[str, ...]:
        if not message_ids:
            return message_ids
        return entity_message_ids(schema.name or "default", target, field_name, message_ids)

    async def validate(
        self,
        schema: TargetSchema,
        *,
        operation: str | None = None,
        context: ValidationContext | None = None,
        **bags: Any,
    ) -> ValidationResult:
        """Validate the actor/input/record bags against `schema`.

        Raises:
            ValueError: If a bag is passed for an unknown target
        """
        return await self.validate_targets(
            schema, bags, applies_to=operation, context=context
        )


def build_entity_schema(
    operation: str,
    entity_validations: Mapping[str, Any] | None,
    *,
    entity_name: str | None = None,
    validator: Validator | None = None,
) -> TargetSchema:
    """Extract the rules for `operation` and compile them into a schema.

    Each field's entries keep their own conditional gates; the named
    conditions of the rule set are compiled into the schema's registry.

    Raises:
        RuleSetError: If the rule set is malformed
    """
    extracted = extract_operation_validations(operation, entity_validations)
    builder = entity(entity_name).for_operations(operation)

    for category, fields in extracted.op_validations.items():
        target = CATEGORY_TARGETS[category]
        for field_name, entries in fields.items():
            rule = compile_field(entries, validator)
            if rule is not None:
                builder.add_field(target, field_name, rule)

    if extracted.conditions:
        builder.define_conditions(compile_conditions(extracted.conditions, validator))

    schema = builder.build()
    logger.debug(
        "Built %s schema for %s with %d field rules",
        entity_name or "entity",
        operation,
        sum(len(fields) for fields in schema.targets.values()),
    )
    return schema


async def validate_entity(
    entity_validations: Mapping[str, Any] | None,
    operation: str,
    *,
    entity_name: str | None = None,
    context: ValidationContext | None = None,
    validator: EntityValidator | None = None,
    **bags: Any,
) -> ValidationResult:
    """Extract, compile and validate in one call."""
    validator = validator or EntityValidator()
    schema = build_entity_schema(
        operation,
        entity_validations,
        entity_name=entity_name,
        validator=validator.validator,
    )
    return await validator.validate(schema, operation=operation, context=context, **bags)
