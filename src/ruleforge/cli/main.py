"""RuleForge CLI entry point."""

import logging

import click


@click.group()
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging.")
def cli(debug: bool):
    """RuleForge — declarative conditional validation CLI."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)


# Register subcommand groups
from ruleforge.cli.rules_cmd import rules  # noqa: E402

cli.add_command(rules)
