"""Upgrade guard for bootstrap stacks.

Bootstrap stacks only move forward: a template older than the deployed
stack is rejected unless the caller forces it.
"""

from __future__ import annotations

from .collaborators import DeployedStackInfo
from .errors import DowngradeRejected


def check_upgrade(
    proposed_version: int,
    deployed: DeployedStackInfo | None,
    force: bool = False,
) -> None:
    """Check that deploying proposed_version over the deployed stack is allowed.

    Args:
        proposed_version: Version declared by the template being deployed.
        deployed: Currently deployed toolkit stack, None for an initial install.
        force: Allow downgrades.

    Raises:
        DowngradeRejected: If proposed_version is older and force is not set.
    """
    if deployed is None or force:
        return

    if proposed_version < deployed.version:
        raise DowngradeRejected(
            proposed_version=proposed_version,
            deployed_version=deployed.version,
            stack_name=deployed.name,
        )
