"""Condition evaluation.

A condition resolves to a plain boolean and never raises: names that cannot
be resolved and predicates that fail are both treated as "does not hold".
"""

import inspect
import logging
from typing import Any

from ruleforge.validation.types import (
    ConditionCallable,
    NamedCondition,
    PredicateCondition,
    ValidationContext,
    as_condition,
)

logger = logging.getLogger(__name__)


async def evaluate_condition(
    condition: Any,
    value: Any,
    context: ValidationContext | None = None,
) -> bool:
    """Resolve a condition to a boolean.

    Args:
        condition: A `NamedCondition`, a `PredicateCondition`, or a plain
            name / callable that is coerced into one
        value: The value being validated
        context: Supplies the named registry, the optional
            `condition_matches` resolver and the data passed to predicates

    Returns:
        True if the condition holds
    """
    condition = as_condition(condition)

    if isinstance(condition, NamedCondition):
        return await _evaluate_named(condition.name, value, context)

    if isinstance(condition, PredicateCondition):
        return await _evaluate_predicate(condition, value, context)

    logger.debug("Unsupported condition %r resolves to False", condition)
    return False


async def _evaluate_named(
    name: str,
    value: Any,
    context: ValidationContext | None,
) -> bool:
    if context is None:
        return False

    if context.condition_matches is not None:
        try:
            return bool(await context.condition_matches(name))
        except Exception as e:
            logger.warning("Error resolving condition %r: %s", name, e)
            return False

    entry = context.conditions.get(name)
    if isinstance(entry, ConditionCallable):
        return await _evaluate_predicate(PredicateCondition(entry.fn), value, context)

    # Missing names and plain registry values are not conditions
    return False


async def _evaluate_predicate(
    condition: PredicateCondition,
    value: Any,
    context: ValidationContext | None,
) -> bool:
    data = context.data if context is not None else None
    try:
        result = condition.fn(value, data)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("Error evaluating condition %r: %s", condition.fn, e)
        return False
    return bool(result)
