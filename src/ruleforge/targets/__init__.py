"""Target validators: generic orchestrator plus entity and HTTP instantiations."""

from ruleforge.targets.base import TargetSchema, TargetSchemaBuilder, TargetValidator
from ruleforge.targets.entity import (
    EntityValidationBuilder,
    EntityValidator,
    build_entity_schema,
    entity,
    validate_entity,
)
from ruleforge.targets.http import HttpValidationBuilder, HttpValidator, http

__all__ = [
    "TargetSchema",
    "TargetSchemaBuilder",
    "TargetValidator",
    "EntityValidationBuilder",
    "EntityValidator",
    "build_entity_schema",
    "entity",
    "validate_entity",
    "HttpValidationBuilder",
    "HttpValidator",
    "http",
]
