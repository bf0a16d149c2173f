"""Deployment of the bootstrap stack.

Runs the version-gated upgrade: resolve the environment, compare the
template's bootstrap version with the deployed one, and only then package
the template and hand it to the deployment engine. Nothing is packaged or
deployed when the upgrade guard rejects.
"""

from __future__ import annotations

from typing import Any

from ..shared.logging import get_logger
from .assembly import build_bootstrap_assembly
from .collaborators import (
    DeploymentEngine,
    DeploymentRequest,
    DeploymentResult,
    Mode,
    SdkProvider,
    ToolkitLookup,
)
from .environment import Environment
from .guard import check_upgrade
from .props import BootstrapOptions
from .version import bootstrap_version_from_template

logger = get_logger(__name__)


async def deploy_bootstrap_stack(
    template: dict[str, Any],
    parameters: dict[str, str | None],
    environment: Environment,
    options: BootstrapOptions,
    *,
    sdk_provider: SdkProvider,
    toolkit_lookup: ToolkitLookup,
    engine: DeploymentEngine,
) -> DeploymentResult:
    """Deploy a bootstrap stack from a template and parameters.

    Args:
        template: Bootstrap template document.
        parameters: Template parameters. None values keep the deployed value.
        environment: Target environment, possibly with placeholders.
        options: Stack name, force flag and pass-through deploy options.
        sdk_provider: Resolves environments and provides sessions.
        toolkit_lookup: Finds the currently deployed toolkit stack.
        engine: Performs the deployment.

    Returns:
        The engine's DeploymentResult, unmodified.

    Raises:
        DowngradeRejected: If the template is older than the deployed stack
            and options.force is not set.
    """
    stack_name = options.stack_name
    log = logger.bind(stack_name=stack_name, environment=environment.name)

    resolved = await sdk_provider.resolve_environment(environment)
    session = await sdk_provider.for_environment(resolved, Mode.FOR_WRITING)
    log = log.bind(resolved_environment=resolved.name)

    new_version = bootstrap_version_from_template(template)
    current = await toolkit_lookup.lookup(resolved, session, stack_name)
    if current is None:
        log.info("No existing bootstrap stack", proposed_version=new_version)
    else:
        log.info(
            "Found existing bootstrap stack",
            proposed_version=new_version,
            deployed_version=current.version,
        )

    check_upgrade(new_version, current, force=options.force)
    if current is not None and new_version < current.version:
        log.warning(
            "Forcing bootstrap stack downgrade",
            proposed_version=new_version,
            deployed_version=current.version,
        )

    assembly = build_bootstrap_assembly(
        template,
        stack_name,
        environment,
        termination_protection=options.termination_protection,
    )

    request = DeploymentRequest(
        stack=assembly.get_stack_by_name(stack_name),
        environment=resolved,
        session=await sdk_provider.for_environment(resolved, Mode.FOR_WRITING),
        parameters=dict(parameters),
        force=options.force,
        role_arn=options.role_arn,
        tags=options.tags,
        execute=options.execute,
    )
    log.info("Deploying bootstrap stack", version=new_version, execute=options.execute)
    return await engine.deploy_stack(request)
