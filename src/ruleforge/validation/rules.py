"""Functional rule library.

Ready-to-use rule constructors. Each returns an immutable `Rule` with a
default message and message id that callers may override.

Available rules:
- required: value is not None
- min_length / max_length: string length bounds
- pattern: regular expression match
- email: email address format
- numeric: number, or a string that parses as one
- min_value / max_value: numeric bounds
- one_of / in_list / not_in_list: membership
- eq / neq / gt / gte / lt / lte: comparisons
- datatype: named type and format checks
- custom: arbitrary predicate
- all_of / any_of: combinators

Every rule except `required` treats None as "nothing to check".
"""

import inspect
import ipaddress
import json
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Callable

from ruleforge.validation.types import (
    Rule,
    ValidationContext,
    ValidationError,
    ValidationResult,
)


# =============================================================================
# Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: http(s) only
URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

# UUID pattern
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)


# =============================================================================
# Rule Factory
# =============================================================================


def create_rule(
    check: Callable[..., Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
    expected: tuple[str, Any] | None = None,
    refine: Callable[[Any], Any] | None = None,
) -> Rule:
    """Create a rule from a boolean check.

    Args:
        check: `(value, context) -> bool`, sync or async
        message: Message reported on failure
        message_id: Message identifier reported on failure
        expected: (constraint name, constraint value) reported on failure
        refine: Derives the refined received value (e.g. a length) on failure

    Returns:
        A `Rule`. A check that raises produces a failed result carrying the
        exception message.
    """

    async def validate(value: Any, context: ValidationContext | None) -> ValidationResult:
        try:
            passed = check(value, context)
            if inspect.isawaitable(passed):
                passed = await passed
        except Exception as e:
            return ValidationResult.fail(
                ValidationError(
                    message=str(e) or "Validation error",
                    message_ids=("validation.error.unexpected",),
                    received=(value,),
                )
            )

        if passed:
            return ValidationResult.ok()

        received: tuple[Any, ...] = (value,)
        if refine is not None:
            received = (value, refine(value))

        return ValidationResult.fail(
            ValidationError(
                message=message,
                message_ids=(message_id,) if message_id else (),
                expected=expected,
                received=received,
            )
        )

    return Rule(check=validate, message=message, message_id=message_id)


def _value_check(predicate: Callable[[Any], bool]) -> Callable[[Any, Any], bool]:
    """Wrap a predicate so that None always passes."""

    def check(value: Any, context: Any) -> bool:
        if value is None:
            return True
        return predicate(value)

    return check


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any) -> float | int | None:
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def predicate(value: Any, other: Any) -> bool:
        try:
            return bool(op(value, other))
        except TypeError:
            return False

    return predicate


# =============================================================================
# Presence
# =============================================================================


def required(*, message: str | None = None, message_id: str | None = None) -> Rule:
    """Value must not be None."""
    return create_rule(
        lambda value, context: value is not None,
        message=message or "Value is required",
        message_id=message_id or "validation.required",
        expected=("required", True),
    )


def custom(
    fn: Callable[..., Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Arbitrary `(value, context) -> bool` check, sync or async."""
    return create_rule(
        fn,
        message=message or "Custom validation failed",
        message_id=message_id or "validation.custom",
    )


# =============================================================================
# Strings
# =============================================================================


def min_length(
    minimum: int,
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """String must have at least `minimum` characters."""
    return create_rule(
        _value_check(lambda v: isinstance(v, str) and len(v) >= minimum),
        message=message or f"Value must be at least {minimum} characters long",
        message_id=message_id or "validation.minlength",
        expected=("minLength", minimum),
        refine=lambda v: len(v) if isinstance(v, str) else None,
    )


def max_length(
    maximum: int,
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """String must have at most `maximum` characters."""
    return create_rule(
        _value_check(lambda v: isinstance(v, str) and len(v) <= maximum),
        message=message or f"Value must be at most {maximum} characters long",
        message_id=message_id or "validation.maxlength",
        expected=("maxLength", maximum),
        refine=lambda v: len(v) if isinstance(v, str) else None,
    )


def pattern(
    regex: str | re.Pattern[str],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """String must contain a match for `regex`."""
    compiled = re.compile(regex) if isinstance(regex, str) else regex
    return create_rule(
        _value_check(lambda v: isinstance(v, str) and compiled.search(v) is not None),
        message=message or f"Value must match pattern {compiled.pattern}",
        message_id=message_id or "validation.pattern",
        expected=("pattern", compiled.pattern),
    )


def email(*, message: str | None = None, message_id: str | None = None) -> Rule:
    """String must be a valid email address."""
    return pattern(
        EMAIL_PATTERN,
        message=message or "Value must be a valid email address",
        message_id=message_id or "validation.email",
    )


# =============================================================================
# Numbers
# =============================================================================


def numeric(*, message: str | None = None, message_id: str | None = None) -> Rule:
    """Value must be a number or a numeric string."""
    return create_rule(
        _value_check(lambda v: _to_number(v) is not None),
        message=message or "Value must be a number",
        message_id=message_id or "validation.numeric",
    )


def min_value(
    minimum: float,
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Numeric value (numeric strings included) must be >= `minimum`."""

    def predicate(v: Any) -> bool:
        number = _to_number(v)
        return number is not None and number >= minimum

    return create_rule(
        _value_check(predicate),
        message=message or f"Value must be at least {minimum}",
        message_id=message_id or "validation.gte",
        expected=("min", minimum),
    )


def max_value(
    maximum: float,
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Numeric value (numeric strings included) must be <= `maximum`."""

    def predicate(v: Any) -> bool:
        number = _to_number(v)
        return number is not None and number <= maximum

    return create_rule(
        _value_check(predicate),
        message=message or f"Value must be at most {maximum}",
        message_id=message_id or "validation.lte",
        expected=("max", maximum),
    )


# =============================================================================
# Comparisons
# =============================================================================


_COMPARATORS: dict[str, tuple[Callable[[Any, Any], bool], str]] = {
    "eq": (_compare(lambda a, b: a == b), "equal to"),
    "neq": (_compare(lambda a, b: a != b), "not equal to"),
    "gt": (_compare(lambda a, b: a > b), "greater than"),
    "gte": (_compare(lambda a, b: a >= b), "greater than or equal to"),
    "lt": (_compare(lambda a, b: a < b), "less than"),
    "lte": (_compare(lambda a, b: a <= b), "less than or equal to"),
}


def _comparison(
    name: str,
    other: Any,
    message: str | None,
    message_id: str | None,
) -> Rule:
    op, phrase = _COMPARATORS[name]
    return create_rule(
        _value_check(lambda v: op(v, other)),
        message=message or f"Value must be {phrase} {other}",
        message_id=message_id or f"validation.{name}",
        expected=(name, other),
    )


def eq(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("eq", other, message, message_id)


def neq(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("neq", other, message, message_id)


def gt(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("gt", other, message, message_id)


def gte(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("gte", other, message, message_id)


def lt(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("lt", other, message, message_id)


def lte(other: Any, *, message: str | None = None, message_id: str | None = None) -> Rule:
    return _comparison("lte", other, message, message_id)


# =============================================================================
# Membership
# =============================================================================


def one_of(
    allowed: Sequence[Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Value must be one of `allowed`."""
    allowed = list(allowed)
    return create_rule(
        _value_check(lambda v: v in allowed),
        message=message or f"Value must be one of: {', '.join(str(a) for a in allowed)}",
        message_id=message_id or "validation.inlist",
        expected=("inList", allowed),
    )


in_list = one_of


def not_in_list(
    disallowed: Sequence[Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Value must not be one of `disallowed`."""
    disallowed = list(disallowed)
    return create_rule(
        _value_check(lambda v: v not in disallowed),
        message=message or f"Value must not be one of: {', '.join(str(d) for d in disallowed)}",
        message_id=message_id or "validation.notinlist",
        expected=("notInList", disallowed),
    )


# =============================================================================
# Data Types
# =============================================================================


def _is_ip(v: Any, version: int | None = None) -> bool:
    if not isinstance(v, str):
        return False
    try:
        address = ipaddress.ip_address(v)
    except ValueError:
        return False
    return version is None or address.version == version


def _is_json(v: Any) -> bool:
    if not isinstance(v, str):
        return False
    try:
        json.loads(v)
    except ValueError:
        return False
    return True


def _is_date(v: Any) -> bool:
    if isinstance(v, (date, datetime)):
        return True
    if not isinstance(v, str):
        return False
    try:
        datetime.fromisoformat(v)
    except ValueError:
        return False
    return True


DATATYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, Mapping),
    "null": lambda v: v is None,
    "email": lambda v: isinstance(v, str) and EMAIL_PATTERN.match(v) is not None,
    "ip": _is_ip,
    "ipv4": lambda v: _is_ip(v, 4),
    "ipv6": lambda v: _is_ip(v, 6),
    "httpUrl": lambda v: isinstance(v, str) and URL_PATTERN.match(v) is not None,
    "uuid": lambda v: isinstance(v, str) and UUID_PATTERN.match(v) is not None,
    "json": _is_json,
    "date": _is_date,
}


def datatype(
    name: str,
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Value must be of the named data type.

    Raises:
        ValueError: If `name` is not a known data type
    """
    if name not in DATATYPE_CHECKS:
        raise ValueError(
            f"Unknown datatype '{name}'. Available types: " + ", ".join(sorted(DATATYPE_CHECKS))
        )
    return create_rule(
        _value_check(DATATYPE_CHECKS[name]),
        message=message or f"Value must be of type {name}",
        message_id=message_id or "validation.datatype",
        expected=("datatype", name),
    )


# =============================================================================
# Combinators
# =============================================================================


def all_of(
    rules: Sequence[Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """Every rule must pass; failures from all rules are collected."""
    rules = list(rules)

    async def validate(value: Any, context: ValidationContext | None) -> ValidationResult:
        errors: list[ValidationError] = []
        for rule in rules:
            result = await rule.validate(value, context)
            if not result.valid:
                errors.extend(result.errors)
        return ValidationResult(valid=not errors, errors=errors)

    return Rule(check=validate, message=message, message_id=message_id)


def any_of(
    rules: Sequence[Any],
    *,
    message: str | None = None,
    message_id: str | None = None,
) -> Rule:
    """At least one rule must pass; evaluation stops at the first that does.

    An empty rule list passes.
    """
    rules = list(rules)

    async def validate(value: Any, context: ValidationContext | None) -> ValidationResult:
        if not rules:
            return ValidationResult.ok()
        errors: list[ValidationError] = []
        for rule in rules:
            result = await rule.validate(value, context)
            if result.valid:
                return ValidationResult.ok()
            errors.extend(result.errors)
        if not errors:
            errors.append(
                ValidationError(
                    message=message or "None of the validation rules passed",
                    message_ids=(message_id,) if message_id else (),
                )
            )
        return ValidationResult(valid=False, errors=errors)

    return Rule(check=validate, message=message, message_id=message_id)
