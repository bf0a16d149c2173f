"""Error types for the bootstrap pipeline.

Collaborator errors are raised by the SDK provider, toolkit lookup and
deployment engine and propagate through the pipeline unchanged. Only
DowngradeRejected originates in the pipeline itself.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class BootstrapError(Exception):
    """Base error class for bootstrap errors."""

    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable error object."""
        error: dict[str, Any] = {"type": type(self).__name__, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


@dataclass
class DowngradeRejected(BootstrapError):
    """Proposed template is older than the deployed bootstrap stack."""

    message: str = ""
    proposed_version: int = 0
    deployed_version: int = 0
    stack_name: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Not downgrading existing bootstrap stack '{self.stack_name}' from version "
                f"'{self.deployed_version}' to version '{self.proposed_version}'. "
                "Use --force to force."
            )
        self.data.update(
            {
                "stack_name": self.stack_name,
                "proposed_version": self.proposed_version,
                "deployed_version": self.deployed_version,
            }
        )


@dataclass
class EnvironmentResolutionError(BootstrapError):
    """Logical environment could not be resolved to a concrete one."""

    message: str = "Could not resolve environment"


@dataclass
class SessionAcquisitionError(BootstrapError):
    """No usable credentials for the target environment."""

    message: str = "Could not obtain credentials for environment"


@dataclass
class StackLookupError(BootstrapError):
    """Querying the deployed toolkit stack failed."""

    message: str = "Could not look up toolkit stack"


@dataclass
class DeploymentEngineError(BootstrapError):
    """The deployment engine failed to deploy the stack."""

    message: str = "Deployment failed"


@dataclass
class TemplateError(BootstrapError):
    """Template file missing or unparseable."""

    message: str = "Invalid template"
