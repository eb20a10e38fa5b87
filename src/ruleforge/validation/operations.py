"""Operation rule extraction.

Entity rule sets are declared once for every operation. Each declarative
entry carries an `operations` list of tags saying which operations it applies
to, optionally under named conditions:

    inputRules:
      email:
        - operations: ["*"]
          datatype: email
        - operations: [create, [update, [isOwner]]]
          required: true
        - operations: [[update, [[isAdmin, isOwner], any]]]
          maxLength: 40

`extract_operation_validations` resolves those tags for one operation and
returns the concrete entries, stripped of their tags.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from ruleforge.validation.types import ConditionsSpec, Scope

logger = logging.getLogger(__name__)

WILDCARD = "*"

RULE_CATEGORIES: tuple[str, ...] = ("actorRules", "inputRules", "recordRules")

# Keys that describe when an entry applies rather than what it checks
_TAG_KEYS = ("operations", "conditions")


class RuleSetError(ValueError):
    """A declarative rule set is malformed (programmer error)."""


# =============================================================================
# Operation Tags
# =============================================================================


@dataclass(frozen=True)
class ConditionRef:
    """Named conditions gating an entry for one operation.

    When a rule set omits the scope it defaults to ANY.
    """

    names: tuple[str, ...]
    scope: Scope = Scope.ANY

    def to_spec(self) -> ConditionsSpec:
        return ConditionsSpec.of(self.names, self.scope)


@dataclass(frozen=True)
class WildcardTag:
    """Applies to every operation."""

    def matches(self, operation: str) -> bool:
        return True


@dataclass(frozen=True)
class OperationNameTag:
    """Applies to one named operation."""

    name: str

    def matches(self, operation: str) -> bool:
        return self.name == operation


@dataclass(frozen=True)
class ConditionalTag:
    """Applies to one operation (or every operation for "*"), under conditions."""

    name: str
    ref: ConditionRef | None = None

    def matches(self, operation: str) -> bool:
        return self.name == WILDCARD or self.name == operation


OperationTag = Union[WildcardTag, OperationNameTag, ConditionalTag]


def _parse_scope(raw: Any) -> Scope:
    try:
        return Scope(raw)
    except ValueError:
        raise RuleSetError(
            f"Invalid condition scope {raw!r}. Expected one of: "
            + ", ".join(s.value for s in Scope)
        ) from None


def _names(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, Sequence) and all(isinstance(n, str) for n in raw):
        return tuple(raw)
    raise RuleSetError(f"Invalid condition names {raw!r}")


def parse_condition_ref(raw: Any) -> ConditionRef:
    """Parse `[names...]`, `[[names...], scope]` or `{conditions, scope}`."""
    if isinstance(raw, ConditionRef):
        return raw

    if isinstance(raw, Mapping):
        if "conditions" not in raw:
            raise RuleSetError(f"Condition reference {raw!r} has no 'conditions'")
        return ConditionRef(
            names=_names(raw["conditions"]),
            scope=_parse_scope(raw.get("scope", Scope.ANY.value)),
        )

    if (
        isinstance(raw, Sequence)
        and not isinstance(raw, str)
        and len(raw) == 2
        and isinstance(raw[0], Sequence)
        and not isinstance(raw[0], str)
        and isinstance(raw[1], (str, Scope))
    ):
        return ConditionRef(names=_names(raw[0]), scope=_parse_scope(raw[1]))

    return ConditionRef(names=_names(raw))


def parse_operation_tag(raw: Any) -> OperationTag:
    """Parse one raw tag: "*", "op", [op], [op, ref] or [op, names, scope]."""
    if isinstance(raw, (WildcardTag, OperationNameTag, ConditionalTag)):
        return raw

    if isinstance(raw, str):
        return WildcardTag() if raw == WILDCARD else OperationNameTag(raw)

    if isinstance(raw, Sequence) and raw and isinstance(raw[0], str):
        name = raw[0]
        if len(raw) == 1 or raw[1] is None:
            return ConditionalTag(name)
        if len(raw) == 2:
            return ConditionalTag(name, parse_condition_ref(raw[1]))
        if len(raw) == 3:
            return ConditionalTag(
                name,
                ConditionRef(names=_names(raw[1]), scope=_parse_scope(raw[2])),
            )

    raise RuleSetError(f"Invalid operation tag {raw!r}")


def parse_operations(raw: Any) -> list[OperationTag]:
    """Parse an entry's `operations` value.

    Accepts a list of tags, a single tag, or the mapping form
    `{op: [{conditions: [...], scope: ...}, ...]}`.
    """
    if isinstance(raw, Mapping):
        tags: list[OperationTag] = []
        for name, refs in raw.items():
            if not isinstance(refs, Sequence) or isinstance(refs, str):
                raise RuleSetError(f"Invalid operations definition for {name!r}: {refs!r}")
            tags.extend(ConditionalTag(name, parse_condition_ref(ref)) for ref in refs)
        return tags

    if isinstance(raw, str):
        return [parse_operation_tag(raw)]

    if isinstance(raw, Sequence):
        return [parse_operation_tag(tag) for tag in raw]

    raise RuleSetError(f"Invalid operations definition {raw!r}")


# =============================================================================
# Extraction
# =============================================================================


@dataclass
class OperationValidations:
    """Entries applicable to one operation, grouped by category and field.

    Attributes:
        op_validations: category ("actorRules", ...) -> field -> stripped entries
        conditions: The rule set's named condition definitions, if any
    """

    op_validations: dict[str, dict[str, list[dict[str, Any]]]]
    conditions: Mapping[str, Any] | None = None


def _strip(entry: Mapping[str, Any], tag: OperationTag) -> dict[str, Any]:
    stripped = {k: v for k, v in entry.items() if k not in _TAG_KEYS}
    if isinstance(tag, ConditionalTag) and tag.ref is not None:
        stripped["conditions"] = tag.ref
    return stripped


def _extract_entries(
    operation: str,
    category: str,
    field_name: str,
    entries: Any,
) -> list[dict[str, Any]]:
    if not isinstance(entries, Sequence) or isinstance(entries, str):
        raise RuleSetError(f"Rules for {category}.{field_name} must be a list, got {entries!r}")

    extracted: list[dict[str, Any]] = []

    for entry in entries:
        if not entry:
            continue
        if not isinstance(entry, Mapping):
            raise RuleSetError(f"Invalid rule entry for {category}.{field_name}: {entry!r}")

        if "operations" not in entry:
            logger.debug(
                "Dropping %s.%s entry without operations: %r", category, field_name, entry
            )
            continue

        matched = False
        emitted: list[dict[str, Any]] = []
        for tag in parse_operations(entry["operations"]):
            if not tag.matches(operation):
                continue
            stripped = _strip(entry, tag)
            if "conditions" not in stripped and stripped in emitted:
                continue
            emitted.append(stripped)
            extracted.append(stripped)
            matched = True

        if not matched:
            logger.debug(
                "No applicable rules for operation %s on %s.%s from %r",
                operation,
                category,
                field_name,
                entry,
            )
        elif not any(k not in _TAG_KEYS for k in entry):
            logger.warning(
                "Rule entry for %s.%s has no validations besides operations",
                category,
                field_name,
            )

    return extracted


def extract_operation_validations(
    operation: str,
    entity_validations: Mapping[str, Any] | None,
) -> OperationValidations:
    """Resolve a multi-operation rule set into the entries for `operation`.

    Args:
        operation: The operation being performed (e.g. "create")
        entity_validations: Mapping with optional `conditions`, `actorRules`,
            `inputRules` and `recordRules`

    Returns:
        OperationValidations where every category is present, fields with no
        applicable entries are omitted, and each field keeps its entries as
        separate list items in declaration order

    Raises:
        RuleSetError: If the rule set has unknown categories or malformed tags
    """
    entity_validations = entity_validations or {}
    unknown = [k for k in entity_validations if k != "conditions" and k not in RULE_CATEGORIES]
    if unknown:
        raise RuleSetError(
            f"Unknown rule categories: {', '.join(map(str, unknown))}. "
            f"Expected: conditions, {', '.join(RULE_CATEGORIES)}"
        )

    op_validations: dict[str, dict[str, list[dict[str, Any]]]] = {
        category: {} for category in RULE_CATEGORIES
    }

    for category in RULE_CATEGORIES:
        category_rules = entity_validations.get(category)
        if not category_rules:
            continue
        if not isinstance(category_rules, Mapping):
            raise RuleSetError(f"'{category}' must be a mapping of field -> rules")

        for field_name, entries in category_rules.items():
            if not entries:
                continue
            extracted = _extract_entries(operation, category, field_name, entries)
            if extracted:
                op_validations[category][field_name] = extracted

    return OperationValidations(
        op_validations=op_validations,
        conditions=entity_validations.get("conditions"),
    )
