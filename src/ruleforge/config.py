"""Validator configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass
class ValidatorSettings:
    """Defaults applied by target validators.

    Attributes:
        collect_errors: Validate every field instead of stopping at the first failure
        verbose_errors: Keep message ids, expected and received values on errors
        max_string_length: Strings longer than this fail without running the field rule
        max_array_length: Lists longer than this fail without running the field rule
    """

    collect_errors: bool = True
    verbose_errors: bool = False
    max_string_length: int = 1_000_000
    max_array_length: int = 10_000

    @classmethod
    def from_env(cls) -> ValidatorSettings:
        """Create settings from environment variables.

        Reads RULEFORGE_COLLECT_ERRORS, RULEFORGE_VERBOSE_ERRORS,
        RULEFORGE_MAX_STRING_LENGTH and RULEFORGE_MAX_ARRAY_LENGTH; unset
        variables keep their defaults.

        Raises:
            ValueError: If a variable is set to an unparsable value
        """
        defaults = cls()
        return cls(
            collect_errors=_env_bool("RULEFORGE_COLLECT_ERRORS", defaults.collect_errors),
            verbose_errors=_env_bool("RULEFORGE_VERBOSE_ERRORS", defaults.verbose_errors),
            max_string_length=_env_int("RULEFORGE_MAX_STRING_LENGTH", defaults.max_string_length),
            max_array_length=_env_int("RULEFORGE_MAX_ARRAY_LENGTH", defaults.max_array_length),
        )
