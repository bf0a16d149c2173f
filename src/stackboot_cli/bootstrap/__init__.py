"""Bootstrap package for provisioning the toolkit stack.

This package provides the pipeline behind `stackboot bootstrap`:
1. Resolves the target environment and checks credentials
2. Reads the bootstrap version from the template
3. Refuses to downgrade a newer deployed toolkit stack (unless forced)
4. Packages the template as a single-stack assembly
5. Hands it to the deployment engine
"""

from .assembly import CloudAssembly, CloudAssemblyBuilder, StackArtifact, build_bootstrap_assembly
from .aws import (
    AwsClients,
    AwsSdkProvider,
    CloudFormationDeployer,
    CloudFormationToolkitLookup,
)
from .collaborators import (
    DeployedStackInfo,
    DeploymentEngine,
    DeploymentRequest,
    DeploymentResult,
    Mode,
    SdkProvider,
    Session,
    ToolkitLookup,
)
from .deploy import deploy_bootstrap_stack
from .environment import (
    UNKNOWN_ACCOUNT,
    UNKNOWN_REGION,
    Environment,
    format_environment,
    parse_environment,
)
from .errors import (
    BootstrapError,
    DeploymentEngineError,
    DowngradeRejected,
    EnvironmentResolutionError,
    SessionAcquisitionError,
    StackLookupError,
    TemplateError,
)
from .guard import check_upgrade
from .props import (
    BOOTSTRAP_VERSION_OUTPUT,
    BOOTSTRAP_VERSION_RESOURCE,
    DEFAULT_TOOLKIT_STACK_NAME,
    BootstrapOptions,
)
from .version import bootstrap_version_from_template, parse_version_marker

__all__ = [
    # Pipeline
    "deploy_bootstrap_stack",
    "bootstrap_version_from_template",
    "parse_version_marker",
    "check_upgrade",
    "BootstrapOptions",
    "DEFAULT_TOOLKIT_STACK_NAME",
    "BOOTSTRAP_VERSION_OUTPUT",
    "BOOTSTRAP_VERSION_RESOURCE",
    # Assembly
    "CloudAssembly",
    "CloudAssemblyBuilder",
    "StackArtifact",
    "build_bootstrap_assembly",
    # Environments
    "Environment",
    "UNKNOWN_ACCOUNT",
    "UNKNOWN_REGION",
    "format_environment",
    "parse_environment",
    # Collaborators
    "DeployedStackInfo",
    "DeploymentEngine",
    "DeploymentRequest",
    "DeploymentResult",
    "Mode",
    "SdkProvider",
    "Session",
    "ToolkitLookup",
    # AWS
    "AwsClients",
    "AwsSdkProvider",
    "CloudFormationDeployer",
    "CloudFormationToolkitLookup",
    # Errors
    "BootstrapError",
    "DowngradeRejected",
    "EnvironmentResolutionError",
    "SessionAcquisitionError",
    "StackLookupError",
    "DeploymentEngineError",
    "TemplateError",
]
