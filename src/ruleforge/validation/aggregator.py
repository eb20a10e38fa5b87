"""Rule aggregator.

Collects rules, optionally gated by conditions, and combines them into one
composite rule.

Compatibility note: by default `composite()` runs every collected rule
unconditionally, so gates attached through `when*` have no effect on the
composite. They only take effect when the collected rules are driven through
`Validator.validate_conditional` (e.g. from `build()`), or when the composite
is created with `honor_conditions=True`.
"""

from collections.abc import Sequence
from typing import Any

from ruleforge.validation.types import (
    Rule,
    ValidationContext,
    ValidationError,
    ValidationResult,
    as_rule,
)
from ruleforge.validation.validator import Validator, create_validator


class RuleAggregator:
    """Fluent collector of rules for a single value.

    Example:
        rule = (
            RuleAggregator()
            .add(required())
            .when("isCompany", min_length(3))
            .composite()
        )
    """

    def __init__(self, validator: Validator | None = None):
        self.validator = validator or create_validator()
        self._rules: list[Rule] = []

    def add(self, rule: Any) -> "RuleAggregator":
        self._rules.append(as_rule(rule))
        return self

    def when(self, condition: Any, rule: Any) -> "RuleAggregator":
        self._rules.append(as_rule(rule).when(condition))
        return self

    def when_all(self, conditions: Sequence[Any], rule: Any) -> "RuleAggregator":
        self._rules.append(as_rule(rule).when_all(conditions))
        return self

    def when_any(self, conditions: Sequence[Any], rule: Any) -> "RuleAggregator":
        self._rules.append(as_rule(rule).when_any(conditions))
        return self

    def when_none(self, conditions: Sequence[Any], rule: Any) -> "RuleAggregator":
        self._rules.append(as_rule(rule).when_none(conditions))
        return self

    def build(self) -> list[Rule]:
        """Return the collected rules in addition order."""
        return list(self._rules)

    def composite(self, *, honor_conditions: bool = False) -> Rule:
        """Combine the collected rules into one rule.

        Every rule runs, in addition order; the composite fails if any rule
        fails, with all errors concatenated in that order.

        Args:
            honor_conditions: Run each rule through its conditional gate
                instead of unconditionally
        """
        rules = list(self._rules)
        validator = self.validator

        async def validate(value: Any, context: ValidationContext | None) -> ValidationResult:
            valid = True
            errors: list[ValidationError] = []

            for rule in rules:
                if honor_conditions:
                    result = await validator.validate_conditional(value, rule, context)
                else:
                    result = await validator.validate(value, rule, context)

                valid = valid and result.valid
                errors.extend(result.errors)

            return ValidationResult(valid=valid, errors=errors)

        return Rule(check=validate)


def create_rule_aggregator(validator: Validator | None = None) -> RuleAggregator:
    """Create a new rule aggregator."""
    return RuleAggregator(validator)
