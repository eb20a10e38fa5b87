"""Rule-set CLI commands — check, extract and validate."""

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from ruleforge.metadata.loader import load_rule_set
from ruleforge.metadata.validator import check_rule_set_file
from ruleforge.targets.entity import EntityValidator
from ruleforge.validation.operations import ConditionRef, RuleSetError
from ruleforge.validation.registry import register_builtin_rules


def _load(path: Path):
    try:
        return load_rule_set(path)
    except RuleSetError as e:
        click.echo(click.style(str(e), fg="red"), err=True)
        raise SystemExit(1)


def _json_default(value: Any) -> Any:
    if isinstance(value, ConditionRef):
        return {"conditions": list(value.names), "scope": value.scope.value}
    return str(value)


def _parse_bag(option: str, raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint=option)


@click.group()
def rules():
    """Rule-set commands."""
    pass


@rules.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
def check(path: Path, strict: bool):
    """Check a rule-set YAML file against the rule-set schema."""
    issues = check_rule_set_file(path)
    if strict:
        for issue in issues:
            issue.severity = "error"

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    click.echo(click.style(f"Rule set {path.name} is valid.", fg="green", bold=True))


@rules.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--operation", "-o", required=True, help="Operation to extract rules for.")
def extract(path: Path, operation: str):
    """Print the rules that apply to one operation as JSON."""
    document = _load(path)
    try:
        extracted = document.extract(operation)
    except RuleSetError as e:
        click.echo(click.style(str(e), fg="red"), err=True)
        raise SystemExit(1)

    output = {
        "entity": document.entity,
        "operation": operation,
        "opValidations": extracted.op_validations,
        "conditions": sorted(extracted.conditions or {}),
    }
    click.echo(json.dumps(output, indent=2, default=_json_default))


@rules.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--operation", "-o", required=True, help="Operation being performed.")
@click.option("--actor", "actor_json", default=None, help="Actor values as JSON.")
@click.option("--input", "input_json", default=None, help="Input values as JSON.")
@click.option("--record", "record_json", default=None, help="Record values as JSON.")
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Include message ids, expected and received values in errors.",
)
def validate(
    path: Path,
    operation: str,
    actor_json: str | None,
    input_json: str | None,
    record_json: str | None,
    verbose: bool,
):
    """Validate actor/input/record values against a rule set."""
    bags = {
        "actor": _parse_bag("--actor", actor_json),
        "input": _parse_bag("--input", input_json),
        "record": _parse_bag("--record", record_json),
    }

    register_builtin_rules()
    document = _load(path)
    validator = EntityValidator(verbose_errors=verbose)

    try:
        schema = document.schema_for(operation, validator.validator)
    except RuleSetError as e:
        click.echo(click.style(str(e), fg="red"), err=True)
        raise SystemExit(1)

    result = asyncio.run(validator.validate(schema, operation=operation, **bags))
    click.echo(json.dumps(result.to_dict(), indent=2, default=str))

    if not result.valid:
        raise SystemExit(1)
