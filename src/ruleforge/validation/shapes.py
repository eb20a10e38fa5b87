"""Object shape validation.

Builds a rule that validates a mapping field by field, honouring each field
rule's conditional gate.
"""

from collections.abc import Mapping
from typing import Any

from ruleforge.validation.types import (
    Rule,
    ValidationContext,
    ValidationError,
    ValidationResult,
)
from ruleforge.validation.validator import Validator, create_validator


def object_schema(
    schema: Mapping[str, Any],
    *,
    validator: Validator | None = None,
    allow_unknown_fields: bool = True,
    message: str | None = None,
) -> Rule:
    """Create a rule validating a mapping against per-field rules.

    Field rules see a context whose `data` is the mapping being validated,
    so functional conditions can inspect sibling fields.

    Args:
        schema: Field name -> rule
        validator: Core validator to drive the field rules
        allow_unknown_fields: If False, fields absent from the schema are
            reported in one aggregate error
        message: Message kept on the returned rule

    Returns:
        A rule that fails for None, non-mapping values (lists included), and
        any failing field; field errors carry the field name as a path prefix.
    """
    validator = validator or create_validator()
    schema = dict(schema)

    async def validate(value: Any, context: ValidationContext | None) -> ValidationResult:
        if value is None:
            return ValidationResult.fail(
                ValidationError(
                    message="Value must be an object",
                    message_ids=("validation.error.object.required",),
                )
            )

        if not isinstance(value, Mapping):
            return ValidationResult.fail(
                ValidationError(
                    message="Value must be an object",
                    message_ids=("validation.error.object.type",),
                    received=(value, type(value).__name__),
                )
            )

        errors: list[ValidationError] = []

        if not allow_unknown_fields:
            unknown = [name for name in value if name not in schema]
            if unknown:
                errors.append(
                    ValidationError(
                        message=f"Unknown fields: {', '.join(map(str, unknown))}",
                        message_ids=("validation.error.object.unknownFields",),
                        received=(unknown,),
                    )
                )

        object_context = (context or ValidationContext()).with_data(value)

        for field_name, rule in schema.items():
            if rule is None:
                continue
            result = await validator.validate_conditional(
                value.get(field_name), rule, object_context
            )
            if not result.valid:
                errors.extend(e.with_prefix(field_name) for e in result.errors)

        return ValidationResult(valid=not errors, errors=errors)

    return Rule(check=validate, message=message)
