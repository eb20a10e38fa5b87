"""HTTP request validation over the body/headers/params/query/cookies targets."""

from __future__ import annotations

from typing import Any

from ruleforge.targets.base import TargetSchema, TargetSchemaBuilder, TargetValidator
from ruleforge.validation.messages import http_message_ids
from ruleforge.validation.types import HTTP_TARGETS, ValidationContext, ValidationResult


class HttpValidationBuilder(TargetSchemaBuilder):
    """Builds an HTTP validation schema.

    Example:
        schema = (
            http()
            .for_methods("POST", "PUT")
            .body("email", email())
            .query("page", numeric())
            .build()
        )
    """

    target_names = HTTP_TARGETS

    def body(self, name: str, rule: Any) -> HttpValidationBuilder:
        return self.add_field("body", name, rule)

    def headers(self, name: str, rule: Any) -> HttpValidationBuilder:
        return self.add_field("headers", name, rule)

    def params(self, name: str, rule: Any) -> HttpValidationBuilder:
        return self.add_field("params", name, rule)

    def query(self, name: str, rule: Any) -> HttpValidationBuilder:
        return self.add_field("query", name, rule)

    def cookies(self, name: str, rule: Any) -> HttpValidationBuilder:
        return self.add_field("cookies", name, rule)

    def for_methods(self, *methods: str) -> HttpValidationBuilder:
        return self._restrict(m.upper() for m in methods)


def http(name: str | None = None) -> HttpValidationBuilder:
    """Start building an HTTP validation schema."""
    return HttpValidationBuilder(name)


class HttpValidator(TargetValidator):
    """Target validator for HTTP requests; every error names its target."""

    target_names = HTTP_TARGETS

    def expand_message_ids(
        self,
        schema: TargetSchema,
        target: str,
        field_name: str,
        message_ids: tuple[str, ...],
    ) -> tuple[str, ...]:
        if not message_ids:
            return message_ids
        return http_message_ids(target, field_name, message_ids)

    async def validate(
        self,
        schema: TargetSchema,
        *,
        method: str | None = None,
        context: ValidationContext | None = None,
        **bags: Any,
    ) -> ValidationResult:
        """Validate request bags against `schema`.

        A schema restricted to other methods passes without looking at the
        request.

        Raises:
            ValueError: If a bag is passed for an unknown target
        """
        return await self.validate_targets(
            schema,
            bags,
            applies_to=method.upper() if method else None,
            context=context,
        )
