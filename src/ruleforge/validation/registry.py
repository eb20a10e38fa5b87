"""Rule registry for RuleForge.

Maps declarative rule keys (as written in rule-set files, e.g. `minLength`)
to factories that build the corresponding functional rule.
"""

from typing import Any, Callable

from ruleforge.validation import rules
from ruleforge.validation.types import Rule

# (param, message, message_id) -> Rule, or None when the param asks for no check
RuleFactory = Callable[[Any, "str | None", "str | None"], "Rule | None"]


class RuleRegistry:
    """Registry of declarative rule factories.

    Factories must be explicitly registered before a key can be compiled.
    The built-in keys are installed by `register_builtin_rules()`.

    Example:
        RuleRegistry.register("isEven", lambda param, message, message_id: custom(...))
        rule = RuleRegistry.create("isEven", True)
    """

    _factories: dict[str, RuleFactory] = {}

    @classmethod
    def register(cls, key: str, factory: RuleFactory) -> None:
        """Register a factory for a declarative key.

        Idempotent - re-registering the same key is a no-op.
        """
        if key in cls._factories:
            return
        cls._factories[key] = factory

    @classmethod
    def create(
        cls,
        key: str,
        param: Any,
        message: str | None = None,
        message_id: str | None = None,
    ) -> Rule | None:
        """Build the rule for `key` with the declared `param`.

        Raises:
            ValueError: If no factory is registered for `key`
        """
        if key not in cls._factories:
            raise ValueError(
                f"Rule '{key}' is not registered. "
                "Available rules: " + ", ".join(cls.list_registered())
            )
        return cls._factories[key](param, message, message_id)

    @classmethod
    def is_registered(cls, key: str) -> bool:
        return key in cls._factories

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._factories)

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._factories.clear()


# =============================================================================
# Built-in Factories
# =============================================================================


def _required_factory(param: Any, message: str | None, message_id: str | None) -> Rule | None:
    if not param:
        return None
    return rules.required(message=message, message_id=message_id)


def _custom_factory(param: Any, message: str | None, message_id: str | None) -> Rule:
    if not callable(param):
        raise ValueError(f"'custom' expects a callable, got {param!r}")
    return rules.custom(param, message=message, message_id=message_id)


def _simple(constructor: Callable[..., Rule]) -> RuleFactory:
    def factory(param: Any, message: str | None, message_id: str | None) -> Rule:
        return constructor(param, message=message, message_id=message_id)

    return factory


def register_builtin_rules() -> None:
    """Register all built-in declarative rule keys with the RuleRegistry."""
    RuleRegistry.register("required", _required_factory)
    RuleRegistry.register("minLength", _simple(rules.min_length))
    RuleRegistry.register("maxLength", _simple(rules.max_length))
    RuleRegistry.register("pattern", _simple(rules.pattern))
    RuleRegistry.register("datatype", _simple(rules.datatype))
    RuleRegistry.register("eq", _simple(rules.eq))
    RuleRegistry.register("neq", _simple(rules.neq))
    RuleRegistry.register("gt", _simple(rules.gt))
    RuleRegistry.register("gte", _simple(rules.gte))
    RuleRegistry.register("lt", _simple(rules.lt))
    RuleRegistry.register("lte", _simple(rules.lte))
    RuleRegistry.register("inList", _simple(rules.in_list))
    RuleRegistry.register("notInList", _simple(rules.not_in_list))
    RuleRegistry.register("custom", _custom_factory)
