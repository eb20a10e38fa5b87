"""Core validator.

Applies a single rule to a single value. Rule failures, including rules that
raise, are always returned as a `ValidationResult`; nothing propagates.
"""

import asyncio
import logging
from typing import Any

from ruleforge.validation.conditions import evaluate_condition
from ruleforge.validation.types import (
    ValidationContext,
    ValidationError,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class Validator:
    """Runs rules, with or without their conditional gates.

    Stateless; one instance may be shared by any number of concurrent
    validations.
    """

    async def validate(
        self,
        value: Any,
        rule: Any,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Run `rule.validate`, converting any exception into a failed result."""
        try:
            result = await rule.validate(value, context)
        except Exception as e:
            logger.debug("Rule %r raised during validation", rule, exc_info=True)
            return ValidationResult.fail(
                ValidationError(
                    message=str(e) or "Validation error",
                    message_ids=("validation.error.unexpected",),
                    received=(value,),
                )
            )

        if result is None:
            return ValidationResult.ok()
        return result

    async def validate_conditional(
        self,
        value: Any,
        rule: Any,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Run the rule only if its gate is open.

        A quantified `conditions` gate takes precedence over a single
        `condition`. A closed gate makes the rule inert and yields a passing
        result.
        """
        spec = getattr(rule, "conditions", None)
        if spec is not None and spec.conditions:
            results = await asyncio.gather(
                *(self.evaluate_condition(c, value, context) for c in spec.conditions)
            )
            if spec.scope.combine(results):
                return await self.validate(value, rule, context)
            return ValidationResult.ok()

        condition = getattr(rule, "condition", None)
        if condition is not None:
            if await self.evaluate_condition(condition, value, context):
                return await self.validate(value, rule, context)
            return ValidationResult.ok()

        return await self.validate(value, rule, context)

    async def evaluate_condition(
        self,
        condition: Any,
        value: Any,
        context: ValidationContext | None = None,
    ) -> bool:
        return await evaluate_condition(condition, value, context)


def create_validator() -> Validator:
    """Create a new core validator."""
    return Validator()
