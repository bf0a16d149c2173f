"""Well-known names and options for bootstrap deployments."""

from __future__ import annotations

from dataclasses import dataclass

# Stack name used when none is configured
DEFAULT_TOOLKIT_STACK_NAME = "CDKToolkit"

# Where a bootstrap template declares its version
BOOTSTRAP_VERSION_OUTPUT = "BootstrapVersion"
BOOTSTRAP_VERSION_RESOURCE = "CdkBootstrapVersion"


@dataclass
class BootstrapOptions:
    """Options for deploying a bootstrap stack (parameters are passed separately)."""

    toolkit_stack_name: str | None = None
    force: bool = False
    role_arn: str | None = None
    tags: dict[str, str] | None = None
    termination_protection: bool | None = None
    execute: bool = True

    @property
    def stack_name(self) -> str:
        return self.toolkit_stack_name or DEFAULT_TOOLKIT_STACK_NAME
