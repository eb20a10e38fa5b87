"""Error message ids and rendering.

Rules report message ids (e.g. `validation.minlength`); target validators
expand them with entity/target/field prefixes so applications can override
messages at any granularity, then render the final text.

Supported placeholders:
- {path} - dotted path of the failing value
- {expected} - the constraint value
- {received} - the received value
- {received[0]} / {received[1]} - received value and its refined form (e.g. length)
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from ruleforge.validation.types import ENTITY_TARGETS, HTTP_TARGETS, ValidationError

DEFAULT_MESSAGES: dict[str, str] = {
    "validation.eq": "Provided value '{received}' for '{path}' should be equal to '{expected}'",
    "validation.neq": "Provided value '{received}' for '{path}' should not be equal to '{expected}'",
    "validation.gt": "Provided value '{received}' for '{path}' should be greater than '{expected}'",
    "validation.gte": "Provided value '{received}' for '{path}' should be greater than or equal to '{expected}'",
    "validation.lt": "Provided value '{received}' for '{path}' should be less than '{expected}'",
    "validation.lte": "Provided value '{received}' for '{path}' should be less than or equal to '{expected}'",
    "validation.custom": "Provided value '{received}' for '{path}' is invalid",
    "validation.inlist": "Provided value '{received}' for '{path}' should be one of '{expected}'",
    "validation.notinlist": "Provided value '{received}' for '{path}' should not be one of '{expected}'",
    "validation.pattern": "Provided value '{received}' for '{path}' should match '{expected}' pattern",
    "validation.datatype": "Provided value '{received}' for '{path}' should be '{expected}'",
    "validation.email": "Provided value '{received}' for '{path}' should be a valid email address",
    "validation.numeric": "Provided value '{received}' for '{path}' should be a number",
    "validation.required": "Provided value '{received}' for '{path}' is required",
    "validation.maxlength": (
        "Provided value '{received[0]}' for '{path}' should have maximum length of "
        "'{expected}'; instead of '{received[1]}'"
    ),
    "validation.minlength": (
        "Provided value '{received[0]}' for '{path}' should have minimum length of "
        "'{expected}'; instead of '{received[1]}'"
    ),
}

FALLBACK_MESSAGE = "Validation failed for '{path}'; expected '{expected}', received '{received}'"

_PREFIX = "validation."


class MessageInterpolator:
    """Renders the display message for a validation error.

    Resolution order:
    1. An override template matching one of the error's ids (most specific first)
    2. The message the rule reported
    3. A default template matching one of the error's ids
    4. The generic fallback template
    """

    PATTERN = re.compile(r"\{(?P<name>path|expected|received)(?:\[(?P<index>[01])\])?\}")

    def __init__(self, overrides: Mapping[str, str] | None = None):
        self.overrides = dict(overrides or {})

    def render(self, error: ValidationError) -> str:
        ids = list(reversed(error.message_ids))

        for message_id in ids:
            if message_id in self.overrides:
                return self.interpolate(self.overrides[message_id], error)

        if error.message:
            return error.message

        for message_id in ids:
            if message_id in DEFAULT_MESSAGES:
                return self.interpolate(DEFAULT_MESSAGES[message_id], error)

        return self.interpolate(FALLBACK_MESSAGE, error)

    def interpolate(self, template: str, error: ValidationError) -> str:
        """Replace placeholders in `template` with values from `error`."""

        def replace(match: re.Match) -> str:
            name = match.group("name")
            if name == "path":
                return ".".join(error.path)
            if name == "expected":
                return _format(error.expected[1]) if error.expected else ""
            index = int(match.group("index") or 0)
            received = error.received or ()
            return _format(received[index]) if index < len(received) else ""

        return self.PATTERN.sub(replace, template)


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


# =============================================================================
# Message Ids
# =============================================================================


def _bare(message_id: str) -> str:
    return message_id[len(_PREFIX):] if message_id.startswith(_PREFIX) else message_id


def message_ids_for_prefix(prefix: str, message_ids: Iterable[str]) -> list[str]:
    """Prepend the lower-cased `prefix` to each id."""
    prefix = prefix.lower()
    return [f"{prefix}.{message_id}" for message_id in message_ids]


def entity_message_ids(
    entity_name: str,
    target: str,
    field: str,
    message_ids: Iterable[str],
) -> tuple[str, ...]:
    """Expand rule message ids for an entity field.

    `validation.required` on `actor.id` of entity `user` yields, among
    others, `validation.id.required`, `validation.actor.id.required` and
    `validation.entity.user.actor.id.required`.

    Raises:
        ValueError: If `target` is not an entity target
    """
    if target not in ENTITY_TARGETS:
        raise ValueError(
            f"Unknown entity validation target '{target}'. "
            f"Expected one of: {', '.join(ENTITY_TARGETS)}"
        )
    bare = [_bare(m) for m in message_ids]
    field_ids = message_ids_for_prefix(field, bare)
    target_ids = message_ids_for_prefix(target, field_ids)
    entity_ids = message_ids_for_prefix(f"entity.{entity_name}", bare + field_ids + target_ids)
    return tuple(_PREFIX + m for m in bare + field_ids + target_ids + entity_ids)


def http_message_ids(
    target: str,
    field: str,
    message_ids: Iterable[str],
) -> tuple[str, ...]:
    """Expand rule message ids for an HTTP request field.

    `validation.required` on `body.email` yields `validation.required` and
    `validation.http.body.email.required`.

    Raises:
        ValueError: If `target` is not an HTTP target
    """
    if target not in HTTP_TARGETS:
        raise ValueError(
            f"Unknown HTTP validation target '{target}'. "
            f"Expected one of: {', '.join(HTTP_TARGETS)}"
        )
    bare = [_bare(m) for m in message_ids]
    field_ids = message_ids_for_prefix(f"http.{target}.{field}", bare)
    return tuple(_PREFIX + m for m in bare + field_ids)
