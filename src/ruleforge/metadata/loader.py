"""Load declarative rule sets from YAML files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ruleforge.metadata.validator import RuleSetIssue, check_rule_set
from ruleforge.targets.base import TargetSchema
from ruleforge.targets.entity import build_entity_schema
from ruleforge.validation.operations import (
    RULE_CATEGORIES,
    OperationValidations,
    RuleSetError,
    extract_operation_validations,
)
from ruleforge.validation.validator import Validator


@dataclass
class RuleSetDocument:
    """A parsed, checked rule set.

    Attributes:
        entity: Entity name (defaults to the file stem)
        validations: The `conditions` and rule categories, ready for extraction
        path: Source file, if loaded from disk
        warnings: Non-fatal findings from the check
    """

    entity: str
    validations: dict[str, Any]
    path: Path | None = None
    warnings: list[RuleSetIssue] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | None = None) -> "RuleSetDocument":
        """Create a RuleSetDocument from a parsed YAML/JSON dict.

        Raises:
            RuleSetError: If the document has errors
        """
        issues = check_rule_set(data, file=path)
        errors = [i for i in issues if i.severity == "error"]
        if errors:
            raise RuleSetError(
                "Invalid rule set:\n" + "\n".join(f"  {issue}" for issue in errors)
            )

        entity = data.get("entity") or (path.stem if path else "default")
        validations = {
            key: data[key]
            for key in ("conditions", *RULE_CATEGORIES)
            if data.get(key) is not None
        }
        return cls(
            entity=entity,
            validations=validations,
            path=path,
            warnings=[i for i in issues if i.severity != "error"],
        )

    def extract(self, operation: str) -> OperationValidations:
        return extract_operation_validations(operation, self.validations)

    def schema_for(self, operation: str, validator: Validator | None = None) -> TargetSchema:
        return build_entity_schema(
            operation,
            self.validations,
            entity_name=self.entity,
            validator=validator,
        )


def load_rule_set(path: Path) -> RuleSetDocument:
    """Load and check a rule-set YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        RuleSetError: If the file cannot be parsed or has errors
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuleSetError(f"YAML parse error in {path}: {e}") from e

    if not isinstance(data, dict):
        raise RuleSetError(f"Rule set {path} must contain a mapping")

    return RuleSetDocument.from_dict(data, path=path)
