"""Core types for the RuleForge validation engine.

This module defines the value types shared by every layer:
- Results and errors produced by rules and validators
- Conditions (named or functional) and their quantified form
- The evaluation context handed to rules and conditions
- The rule protocol and the concrete `Rule` used by the rule library
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol, Union, runtime_checkable


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ValidationError:
    """A single validation failure.

    Attributes:
        message: Human-readable message, if the rule supplied one
        message_ids: Message identifiers for translation, least specific first
        path: Location of the failing value, outermost first (target, field, ...)
        expected: (constraint name, constraint value) the value was checked against
        received: (value,) or (value, refined value) that failed the check
        target: The target group ("body", "actor", ...) the error belongs to
    """

    message: str | None = None
    message_ids: tuple[str, ...] = ()
    path: tuple[str, ...] = ()
    expected: tuple[str, Any] | None = None
    received: tuple[Any, ...] | None = None
    target: str | None = None

    def with_prefix(self, *segments: str) -> "ValidationError":
        """Return a copy with `segments` prepended to the path."""
        return replace(self, path=tuple(segments) + self.path)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "message": self.message,
            "path": list(self.path),
        }
        if self.message_ids:
            result["messageIds"] = list(self.message_ids)
        if self.expected is not None:
            result["expected"] = list(self.expected)
        if self.received is not None:
            result["received"] = list(self.received)
        if self.target is not None:
            result["target"] = self.target
        return result


@dataclass
class ValidationResult:
    """Outcome of validating a value.

    `valid` always mirrors `errors`: a result with errors is invalid, and an
    invalid result without errors is given a generic one.

    Attributes:
        valid: True if no errors
        errors: Path-qualified errors, in the order they were produced
    """

    valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.errors = list(self.errors)
        if self.errors:
            self.valid = False
        elif not self.valid:
            self.errors = [
                ValidationError(
                    message="Validation failed",
                    message_ids=("validation.failed",),
                )
            ]

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, *errors: ValidationError) -> "ValidationResult":
        return cls(valid=False, errors=list(errors))

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }


# =============================================================================
# Conditions
# =============================================================================


class Scope(Enum):
    """How the results of several conditions are combined.

    ALL: every condition must hold
    ANY: at least one condition must hold
    NONE: no condition may hold
    """

    ALL = "all"
    ANY = "any"
    NONE = "none"

    def combine(self, results: Sequence[bool]) -> bool:
        if self is Scope.ALL:
            return all(results)
        if self is Scope.ANY:
            return any(results)
        return not any(results)


# (value, context data) -> bool, or an awaitable resolving to bool
Predicate = Callable[[Any, Any], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class NamedCondition:
    """Reference to a condition registered under `name` in the context."""

    name: str


@dataclass(frozen=True)
class PredicateCondition:
    """A condition computed from the value and the context data."""

    fn: Predicate


Condition = Union[NamedCondition, PredicateCondition]


def as_condition(condition: Any) -> Any:
    """Coerce a plain name or callable into a `Condition`.

    Anything else is returned untouched; the evaluator treats it as
    unsupported.
    """
    if isinstance(condition, (NamedCondition, PredicateCondition)):
        return condition
    if isinstance(condition, str):
        return NamedCondition(condition)
    if callable(condition):
        return PredicateCondition(condition)
    return condition


@dataclass(frozen=True)
class ConditionsSpec:
    """A list of conditions combined under a scope."""

    conditions: tuple[Any, ...]
    scope: Scope = Scope.ALL

    @classmethod
    def of(cls, conditions: Sequence[Any], scope: Scope | str = Scope.ALL) -> "ConditionsSpec":
        return cls(
            conditions=tuple(as_condition(c) for c in conditions),
            scope=Scope(scope),
        )


@dataclass(frozen=True)
class ConditionCallable:
    """Registry entry that is evaluated as a predicate when referenced by name."""

    fn: Predicate


@dataclass(frozen=True)
class ConditionValue:
    """Registry entry holding plain contextual data.

    Kept distinct from `ConditionCallable` so that a callable business value
    is never mistaken for a predicate.
    """

    value: Any


RegisteredCondition = Union[ConditionCallable, ConditionValue]


def registered_condition(entry: Any) -> RegisteredCondition:
    """Wrap a raw registry value: callables become predicates, anything else data."""
    if isinstance(entry, (ConditionCallable, ConditionValue)):
        return entry
    if callable(entry):
        return ConditionCallable(entry)
    return ConditionValue(entry)


def condition_registry(entries: Mapping[str, Any] | None) -> dict[str, RegisteredCondition]:
    return {name: registered_condition(entry) for name, entry in (entries or {}).items()}


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class ValidationContext:
    """Context passed to rules and conditions during validation.

    The engine never mutates a context; derived contexts are built with
    `dataclasses.replace`.

    Attributes:
        data: Arbitrary data handed to functional conditions as their second argument
        conditions: Named condition registry
        condition_matches: When set, the only resolver used for named conditions
        extra: Additional caller-defined fields
    """

    data: Any = None
    conditions: Mapping[str, RegisteredCondition] = field(default_factory=dict)
    condition_matches: Callable[[str], Awaitable[bool]] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", condition_registry(self.conditions))

    def with_data(self, data: Any) -> "ValidationContext":
        return replace(self, data=data)


# =============================================================================
# Rules
# =============================================================================


@runtime_checkable
class ValidationRule(Protocol):
    """Protocol that every rule implements.

    Gating attributes (`condition`, `conditions`) are only consulted by
    `Validator.validate_conditional`.
    """

    message: str | None
    message_id: str | None
    condition: Any
    conditions: ConditionsSpec | None

    async def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        ...


# (value, context) -> ValidationResult, or an awaitable resolving to one
RuleCheck = Callable[[Any, Union[ValidationContext, None]], Any]


@dataclass(frozen=True)
class Rule:
    """Concrete, immutable validation rule.

    Gated variants are derived copies; the original rule is never changed.
    """

    check: RuleCheck
    message: str | None = None
    message_id: str | None = None
    condition: Any = None
    conditions: ConditionsSpec | None = None

    async def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        result = self.check(value, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def when(self, condition: Any) -> "Rule":
        return replace(self, condition=as_condition(condition))

    def when_all(self, conditions: Sequence[Any]) -> "Rule":
        return replace(self, conditions=ConditionsSpec.of(conditions, Scope.ALL))

    def when_any(self, conditions: Sequence[Any]) -> "Rule":
        return replace(self, conditions=ConditionsSpec.of(conditions, Scope.ANY))

    def when_none(self, conditions: Sequence[Any]) -> "Rule":
        return replace(self, conditions=ConditionsSpec.of(conditions, Scope.NONE))


def as_rule(rule: Any) -> Rule:
    """Adapt any object implementing the rule protocol into a `Rule`."""
    if isinstance(rule, Rule):
        return rule
    return Rule(
        check=rule.validate,
        message=getattr(rule, "message", None),
        message_id=getattr(rule, "message_id", None),
        condition=getattr(rule, "condition", None),
        conditions=getattr(rule, "conditions", None),
    )


# =============================================================================
# Targets
# =============================================================================

ENTITY_TARGETS: tuple[str, ...] = ("actor", "input", "record")

HTTP_TARGETS: tuple[str, ...] = ("body", "headers", "params", "query", "cookies")
