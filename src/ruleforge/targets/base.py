"""Generic target validation.

A target schema maps target groups (e.g. "body", "actor") to per-field rules.
`TargetValidator` applies such a schema to a bag of raw values per target and
aggregates path-qualified errors. The entity and HTTP validators are
instantiations over fixed target sets.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ruleforge.config import ValidatorSettings
from ruleforge.validation.messages import MessageInterpolator
from ruleforge.validation.types import (
    ValidationContext,
    ValidationError,
    ValidationResult,
    condition_registry,
)
from ruleforge.validation.validator import Validator, create_validator

logger = logging.getLogger(__name__)

GENERIC_FAILURE_ID = "validation.failed"


# =============================================================================
# Schema
# =============================================================================


@dataclass(frozen=True)
class TargetSchema:
    """Immutable per-target rule map.

    Attributes:
        targets: target -> field -> rule, in declaration order
        conditions: Named conditions made available to every rule
        applies_to: Operations/methods the schema applies to (None = all)
        name: Optional schema name (e.g. the entity name)
    """

    targets: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    conditions: Mapping[str, Any] = field(default_factory=dict)
    applies_to: tuple[str, ...] | None = None
    name: str | None = None

    def applies(self, name: str | None) -> bool:
        if self.applies_to is None or name is None:
            return True
        return name in self.applies_to

    def fields(self, target: str) -> Mapping[str, Any]:
        return self.targets.get(target, {})


class TargetSchemaBuilder:
    """Fluent accumulator for a `TargetSchema`.

    Raises ValueError when a field is added to a target outside
    `target_names`.
    """

    target_names: tuple[str, ...] = ()

    def __init__(self, name: str | None = None):
        self._name = name
        self._targets: dict[str, dict[str, Any]] = {}
        self._conditions: dict[str, Any] = {}
        self._applies_to: tuple[str, ...] | None = None

    def _check_target(self, target: str) -> None:
        if target not in self.target_names:
            raise ValueError(
                f"Unknown validation target '{target}'. "
                f"Expected one of: {', '.join(self.target_names)}"
            )

    def add_field(self, target: str, name: str, rule: Any) -> TargetSchemaBuilder:
        self._check_target(target)
        self._targets.setdefault(target, {})[name] = rule
        return self

    def fields(
        self,
        target: str,
        rules: Mapping[str, Any] | Iterable[str],
        factory: Callable[[str], Any] | None = None,
    ) -> TargetSchemaBuilder:
        """Add several fields at once.

        Either `rules` maps field names to rules, or it lists field names and
        `factory` builds each field's rule from its name.
        """
        if isinstance(rules, Mapping):
            for name, rule in rules.items():
                self.add_field(target, name, rule)
            return self

        if factory is None:
            raise ValueError("A rule factory is required when adding fields by name")
        for name in rules:
            self.add_field(target, name, factory(name))
        return self

    def define_conditions(self, conditions: Mapping[str, Any]) -> TargetSchemaBuilder:
        """Merge named conditions into the schema's registry."""
        self._conditions.update(conditions)
        return self

    def _restrict(self, names: Iterable[str]) -> TargetSchemaBuilder:
        self._applies_to = tuple(names)
        return self

    def build(self) -> TargetSchema:
        return TargetSchema(
            targets={target: dict(fields) for target, fields in self._targets.items()},
            conditions=dict(self._conditions),
            applies_to=self._applies_to,
            name=self._name,
        )


# =============================================================================
# Validator
# =============================================================================


class TargetValidator:
    """Applies a `TargetSchema` to target value bags.

    Fields are validated sequentially in declaration order. Targets whose bag
    is None are skipped; an empty bag is validated.

    Args:
        validator: Core validator used for every field
        settings: Defaults for the options below (from the environment if omitted)
        collect_errors: Validate every field; when False, stop at the first
            failing field and skip the remaining targets
        verbose_errors: Keep message ids, expected and received values on errors
        messages: Message templates overriding the defaults, keyed by message id
        gate_fields: Drive field rules through their conditional gates
    """

    target_names: tuple[str, ...] = ()

    def __init__(
        self,
        validator: Validator | None = None,
        *,
        settings: ValidatorSettings | None = None,
        collect_errors: bool | None = None,
        verbose_errors: bool | None = None,
        messages: Mapping[str, str] | None = None,
        gate_fields: bool = False,
    ):
        settings = settings or ValidatorSettings.from_env()
        self.validator = validator or create_validator()
        self.settings = settings
        self.collect_errors = settings.collect_errors if collect_errors is None else collect_errors
        self.verbose_errors = settings.verbose_errors if verbose_errors is None else verbose_errors
        self.gate_fields = gate_fields
        self.interpolator = MessageInterpolator(messages)

    def check_targets(self, bags: Mapping[str, Any]) -> None:
        unknown = [name for name in bags if name not in self.target_names]
        if unknown:
            raise ValueError(
                f"Unknown validation targets: {', '.join(unknown)}. "
                f"Expected: {', '.join(self.target_names)}"
            )

    def expand_message_ids(
        self,
        schema: TargetSchema,
        target: str,
        field_name: str,
        message_ids: tuple[str, ...],
    ) -> tuple[str, ...]:
        return message_ids

    async def validate_targets(
        self,
        schema: TargetSchema,
        bags: Mapping[str, Any],
        *,
        applies_to: str | None = None,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Validate every field of every target declared by `schema`.

        Args:
            schema: The rules to apply
            bags: target -> raw values
            applies_to: Current operation/method, checked against the schema's filter
            context: Caller context; its conditions are merged over the schema's

        Returns:
            The aggregated result, errors prefixed with (target, field)
        """
        self.check_targets(bags)

        if not schema.applies(applies_to):
            logger.debug("Schema %s does not apply to %s", schema.name or "", applies_to)
            return ValidationResult.ok()

        context = self._snapshot(schema, bags, context)
        errors: list[ValidationError] = []

        for target, fields in schema.targets.items():
            bag = bags.get(target)
            if bag is None:
                continue

            target_errors = await self._validate_target(schema, target, fields, bag, context)
            errors.extend(target_errors)

            if target_errors and not self.collect_errors:
                break

        return ValidationResult(valid=not errors, errors=errors)

    def _snapshot(
        self,
        schema: TargetSchema,
        bags: Mapping[str, Any],
        context: ValidationContext | None,
    ) -> ValidationContext:
        context = context or ValidationContext()
        data = dict(context.data) if isinstance(context.data, Mapping) else {}
        data.update({name: bag for name, bag in bags.items() if bag is not None})
        return replace(
            context,
            data=data,
            conditions={**condition_registry(schema.conditions), **context.conditions},
        )

    async def _validate_target(
        self,
        schema: TargetSchema,
        target: str,
        fields: Mapping[str, Any],
        bag: Any,
        context: ValidationContext,
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []

        for field_name, rule in fields.items():
            if rule is None:
                continue

            value = _field_value(bag, field_name)
            result = self._check_size(value)
            if result is None:
                if self.gate_fields:
                    result = await self.validator.validate_conditional(value, rule, context)
                else:
                    result = await self.validator.validate(value, rule, context)

            if result.valid:
                continue

            errors.extend(
                self._qualify(schema, target, field_name, error) for error in result.errors
            )
            if not self.collect_errors:
                break

        return errors

    def _check_size(self, value: Any) -> ValidationResult | None:
        if isinstance(value, str) and len(value) > self.settings.max_string_length:
            return ValidationResult.fail(
                ValidationError(
                    message=f"String exceeds maximum length of {self.settings.max_string_length}",
                    message_ids=("validation.error.string.toolong",),
                    expected=("maxLength", self.settings.max_string_length),
                    received=(None, len(value)),
                )
            )
        if isinstance(value, list) and len(value) > self.settings.max_array_length:
            return ValidationResult.fail(
                ValidationError(
                    message=f"Array exceeds maximum length of {self.settings.max_array_length}",
                    message_ids=("validation.error.array.toolong",),
                    expected=("maxLength", self.settings.max_array_length),
                    received=(None, len(value)),
                )
            )
        return None

    def _qualify(
        self,
        schema: TargetSchema,
        target: str,
        field_name: str,
        error: ValidationError,
    ) -> ValidationError:
        if error.message_ids == (GENERIC_FAILURE_ID,) and not error.path:
            error = replace(error, message=f"Validation failed for {target}.{field_name}")

        error = replace(
            error.with_prefix(target, field_name),
            message_ids=self.expand_message_ids(schema, target, field_name, error.message_ids),
            target=target,
        )
        error = replace(error, message=self.interpolator.render(error))

        if self.verbose_errors:
            return error
        return ValidationError(message=error.message, path=error.path, target=target)


def _field_value(bag: Any, field_name: str) -> Any:
    if isinstance(bag, Mapping):
        return bag.get(field_name)
    return getattr(bag, field_name, None)
