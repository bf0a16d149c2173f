"""In-memory artifact bundle for bootstrap deployments.

A bootstrap deployment hands the engine a single-stack assembly: one
CloudFormation stack artifact carrying the template, the target
environment and the stack-level properties. The assembly lives in memory;
writing it to disk is up to the engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .environment import Environment

ARTIFACT_TYPE_CLOUDFORMATION_STACK = "aws:cloudformation:stack"


@dataclass(frozen=True)
class StackArtifact:
    """A deployable CloudFormation stack."""

    id: str
    template: dict[str, Any]
    environment: str
    template_file: str
    termination_protection: bool = False
    type: str = ARTIFACT_TYPE_CLOUDFORMATION_STACK

    @property
    def stack_name(self) -> str:
        return self.id

    def template_body(self) -> str:
        """Serialize the template as compact JSON for the deployment engine."""
        # YAML templates may carry unquoted dates
        return json.dumps(self.template, separators=(",", ":"), default=str)


@dataclass
class CloudAssembly:
    """A set of named artifacts."""

    artifacts: dict[str, StackArtifact] = field(default_factory=dict)

    def get_stack_by_name(self, name: str) -> StackArtifact:
        """Get a stack artifact by its logical name.

        Raises:
            KeyError: If no stack with that name is in the assembly.
        """
        artifact = self.artifacts.get(name)
        if artifact is None or artifact.type != ARTIFACT_TYPE_CLOUDFORMATION_STACK:
            raise KeyError(f"Unable to find stack with stack name '{name}'")
        return artifact


class CloudAssemblyBuilder:
    """Collect artifacts and build a CloudAssembly."""

    def __init__(self) -> None:
        self._artifacts: dict[str, StackArtifact] = {}

    def add_stack(
        self,
        stack_name: str,
        template: dict[str, Any],
        environment: Environment,
        termination_protection: bool | None = None,
    ) -> StackArtifact:
        """Add a CloudFormation stack artifact.

        Args:
            stack_name: Logical name of the artifact, also the deployed stack name.
            template: Template document.
            environment: Environment the artifact is tagged with.
            termination_protection: Enable termination protection (default: False).

        Returns:
            The added artifact.
        """
        if stack_name in self._artifacts:
            raise ValueError(f"Artifact '{stack_name}' already added")

        artifact = StackArtifact(
            id=stack_name,
            template=template,
            environment=environment.name,
            template_file=f"{stack_name}.template.json",
            termination_protection=bool(termination_protection),
        )
        self._artifacts[stack_name] = artifact
        return artifact

    def build(self) -> CloudAssembly:
        return CloudAssembly(artifacts=dict(self._artifacts))


def build_bootstrap_assembly(
    template: dict[str, Any],
    stack_name: str,
    environment: Environment,
    termination_protection: bool | None = None,
) -> CloudAssembly:
    """Wrap a bootstrap template in a single-stack assembly."""
    builder = CloudAssemblyBuilder()
    builder.add_stack(stack_name, template, environment, termination_protection)
    return builder.build()
