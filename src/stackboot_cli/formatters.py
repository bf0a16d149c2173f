"""CLI output formatting helpers."""

import json
from dataclasses import asdict
from typing import Any

import click
import yaml
from rich.console import Console
from rich.markup import escape

from .bootstrap import BootstrapError, DeployedStackInfo, DeploymentResult, Environment

# Errors go to stderr
err_console = Console(stderr=True)


def print_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def print_config_yaml(data: dict[str, Any], section: str | None = None) -> None:
    """Print config as YAML.

    Args:
        data: Configuration data
        section: Optional section name for header
    """
    yaml_str = yaml.dump(data, default_flow_style=False, sort_keys=False)
    if section:
        click.echo(f"{section}:")
        for line in yaml_str.splitlines():
            click.echo(f"  {line}")
    else:
        click.echo(yaml_str.rstrip())


def print_error(error: BootstrapError) -> None:
    """Print a bootstrap error to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(error.message)}", highlight=False, soft_wrap=True)


def print_stack_info(info: DeployedStackInfo | None, stack_name: str, environment: Environment) -> None:
    """Print the deployed toolkit stack."""
    if info is None:
        click.echo(f"No toolkit stack '{stack_name}' in {environment}.")
        click.echo("Run: stackboot bootstrap")
        return

    click.echo(f"Stack:   {info.name}")
    click.echo(f"Env:     {environment}")
    click.echo(f"Status:  {info.status or 'unknown'}")
    click.echo(f"Version: {info.version}")
    click.echo(f"Termination protection: {'enabled' if info.termination_protection else 'disabled'}")
    if info.outputs:
        click.echo("Outputs:")
        for key, value in info.outputs.items():
            click.echo(f"  {key}: {value}")


def print_deploy_result(result: DeploymentResult, environment: Environment) -> None:
    """Print the outcome of a bootstrap deployment."""
    if not result.executed:
        click.echo(f"✓ Change set created for {result.stack_name} ({environment}), not executed.")
        return

    if result.noop:
        click.echo(f"✓ {result.stack_name} ({environment}): no changes")
    else:
        click.echo(f"✓ {result.stack_name} ({environment}): bootstrapped")

    if result.stack_arn:
        click.echo(f"  Stack ARN: {result.stack_arn}")
    if result.outputs:
        click.echo("  Outputs:")
        for key, value in result.outputs.items():
            click.echo(f"    {key}: {value}")


def result_to_dict(result: DeploymentResult | DeployedStackInfo) -> dict[str, Any]:
    return asdict(result)
