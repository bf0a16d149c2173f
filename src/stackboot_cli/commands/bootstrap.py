"""Bootstrap command for provisioning the toolkit stack.

This module provides the `stackboot bootstrap` command which deploys or
upgrades the toolkit stack in an AWS environment, refusing to downgrade
a newer deployed stack unless forced.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any, NoReturn

import click
from click.core import ParameterSource

from ..bootstrap import (
    AwsClients,
    AwsSdkProvider,
    BootstrapError,
    BootstrapOptions,
    CloudFormationDeployer,
    CloudFormationToolkitLookup,
    DeploymentEngine,
    DeploymentResult,
    Environment,
    Mode,
    SdkProvider,
    ToolkitLookup,
    bootstrap_version_from_template,
    deploy_bootstrap_stack,
    parse_environment,
)
from ..config import CLIConfig, load_config
from ..formatters import (
    print_deploy_result,
    print_error,
    print_json,
    print_stack_info,
    result_to_dict,
)
from ..shared.logging import get_logger
from ..utils import load_template, parse_key_values

logger = get_logger(__name__)


def _aws_collaborators(config: CLIConfig) -> tuple[SdkProvider, ToolkitLookup, DeploymentEngine]:
    """Build the boto3 backed collaborators for a configuration."""
    clients = AwsClients(profile=config.profile)
    return (
        AwsSdkProvider(clients, default_region=config.region),
        CloudFormationToolkitLookup(clients),
        CloudFormationDeployer(clients),
    )


def _context_config(ctx: click.Context) -> tuple[CLIConfig, bool]:
    obj = ctx.find_root().obj or {}
    config = obj.get("config") or load_config()
    json_output = bool(obj.get("json_output")) or config.output_format == "json"
    return config, json_output


def _reject_deploy_options(ctx: click.Context) -> None:
    """Refuse deploy options given together with a subcommand."""
    given = [
        param.opts[-1]
        for param in ctx.command.params
        if isinstance(param, click.Option)
        and ctx.get_parameter_source(param.name)
        not in (None, ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP)
    ]
    if given:
        raise click.UsageError(
            f"{', '.join(given)} cannot be combined with the '{ctx.invoked_subcommand}' subcommand",
            ctx=ctx,
        )


def _fail(error: BootstrapError, json_output: bool) -> NoReturn:
    if json_output:
        print_json({"error": error.to_dict()})
    else:
        print_error(error)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "-e",
    "--environment",
    default=None,
    help="Target environment aws://ACCOUNT/REGION (default: current credentials)",
)
@click.option(
    "--template",
    "template_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Bootstrap template (JSON/YAML, default: bundled template)",
)
@click.option("--toolkit-stack-name", default=None, help="Name of the toolkit stack")
@click.option("--force", is_flag=True, help="Deploy even if it downgrades the toolkit stack")
@click.option("--role-arn", default=None, help="IAM role CloudFormation assumes to deploy")
@click.option("--tag", "tags", multiple=True, help="Stack tag KEY=VALUE")
@click.option(
    "--parameter",
    "parameters",
    multiple=True,
    help="Template parameter KEY=VALUE (bare KEY keeps the deployed value)",
)
@click.option(
    "--termination-protection/--no-termination-protection",
    default=None,
    help="Toggle termination protection on the toolkit stack",
)
@click.option(
    "--execute/--no-execute",
    default=True,
    help="Execute the change set, or only create it",
)
@click.pass_context
def bootstrap(
    ctx,
    environment,
    template_file,
    toolkit_stack_name,
    force,
    role_arn,
    tags,
    parameters,
    termination_protection,
    execute,
):
    """Deploy or upgrade the toolkit stack.

    Reads the bootstrap version from the template and refuses to replace
    a newer deployed toolkit stack unless --force is given.

    Examples:

        # Bootstrap the default account/region with the bundled template
        stackboot bootstrap

        # Bootstrap a specific environment with a custom template
        stackboot bootstrap -e aws://123456789012/eu-west-1 --template bootstrap.yaml

        # Only create the change set
        stackboot bootstrap --no-execute
    """
    if ctx.invoked_subcommand is not None:
        _reject_deploy_options(ctx)
        return  # Subcommand handles it

    config, json_output = _context_config(ctx)

    try:
        parsed_parameters = parse_key_values(parameters, allow_missing_value=True)
        parsed_tags = parse_key_values(tags)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    options = BootstrapOptions(
        toolkit_stack_name=toolkit_stack_name or config.toolkit_stack_name,
        force=force,
        role_arn=role_arn,
        tags={k: v or "" for k, v in parsed_tags.items()} or None,
        termination_protection=termination_protection,
        execute=execute,
    )

    try:
        env = parse_environment(environment)
        template = load_template(template_file)
        result = asyncio.run(
            _run_bootstrap(template, parsed_parameters, env, options, config, json_output)
        )
    except BootstrapError as e:
        logger.debug("Bootstrap failed", error=e.to_dict())
        _fail(e, json_output)

    if json_output:
        print_json(result_to_dict(result))
    else:
        print_deploy_result(result, env)


@bootstrap.command()
@click.option("-e", "--environment", default=None, help="Environment aws://ACCOUNT/REGION")
@click.option("--toolkit-stack-name", default=None, help="Name of the toolkit stack")
@click.pass_context
def status(ctx, environment, toolkit_stack_name):
    """Show the deployed toolkit stack."""
    config, json_output = _context_config(ctx)
    stack_name = toolkit_stack_name or config.toolkit_stack_name

    try:
        env = parse_environment(environment)
        resolved, info = asyncio.run(_lookup_toolkit(env, stack_name, config))
    except BootstrapError as e:
        _fail(e, json_output)

    if json_output:
        print_json(
            {
                "environment": resolved.name,
                "stack_name": stack_name,
                "stack": result_to_dict(info) if info else None,
            }
        )
    else:
        print_stack_info(info, stack_name, resolved)


@bootstrap.command()
@click.option(
    "--template",
    "template_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Bootstrap template (default: bundled template)",
)
@click.pass_context
def version(ctx, template_file):
    """Show the bootstrap version a template declares."""
    _, json_output = _context_config(ctx)

    try:
        template = load_template(template_file)
    except BootstrapError as e:
        _fail(e, json_output)

    template_version = bootstrap_version_from_template(template)
    if json_output:
        print_json({"template": template_file or "(bundled)", "version": template_version})
    else:
        click.echo(str(template_version))


async def _run_bootstrap(
    template: dict[str, Any],
    parameters: dict[str, str | None],
    environment: Environment,
    options: BootstrapOptions,
    config: CLIConfig,
    json_output: bool,
) -> DeploymentResult:
    """Execute the bootstrap deployment."""
    if not json_output:
        click.echo(
            f"Bootstrapping {environment} "
            f"(stack {options.stack_name}, template version "
            f"{bootstrap_version_from_template(template)})",
            err=True,
        )

    sdk_provider, toolkit_lookup, engine = _aws_collaborators(config)
    return await deploy_bootstrap_stack(
        template,
        parameters,
        environment,
        options,
        sdk_provider=sdk_provider,
        toolkit_lookup=toolkit_lookup,
        engine=engine,
    )


async def _lookup_toolkit(environment: Environment, stack_name: str, config: CLIConfig):
    """Resolve the environment and look up its toolkit stack."""
    sdk_provider, toolkit_lookup, _ = _aws_collaborators(config)
    resolved = await sdk_provider.resolve_environment(environment)
    session = await sdk_provider.for_environment(resolved, Mode.FOR_READING)
    return resolved, await toolkit_lookup.lookup(resolved, session, stack_name)
