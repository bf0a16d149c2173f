"""Interfaces of the services the bootstrap pipeline depends on.

The pipeline resolves environments and obtains sessions through an
SdkProvider, asks a ToolkitLookup for the deployed toolkit stack, and hands
the packaged stack to a DeploymentEngine. Errors raised by any of these
propagate to the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .assembly import StackArtifact
from .environment import Environment


class Mode(Enum):
    """Access a session is obtained for."""

    FOR_READING = "for_reading"
    FOR_WRITING = "for_writing"


@dataclass(frozen=True)
class Session:
    """Credentials context scoped to one environment."""

    environment: Environment
    mode: Mode
    profile: str | None = None
    caller_arn: str | None = None


@dataclass(frozen=True)
class DeployedStackInfo:
    """Snapshot of the deployed toolkit stack."""

    name: str
    version: int
    stack_id: str | None = None
    status: str | None = None
    outputs: dict[str, str] = field(default_factory=dict)
    termination_protection: bool = False


@dataclass(frozen=True)
class DeploymentRequest:
    """Everything the engine needs to deploy one stack."""

    stack: StackArtifact
    environment: Environment
    session: Session
    parameters: dict[str, str | None] = field(default_factory=dict)
    force: bool = False
    role_arn: str | None = None
    tags: dict[str, str] | None = None
    execute: bool = True


@dataclass
class DeploymentResult:
    """Outcome reported by the deployment engine."""

    stack_name: str
    noop: bool = False
    stack_arn: str | None = None
    outputs: dict[str, str] = field(default_factory=dict)
    executed: bool = True


class SdkProvider(Protocol):
    async def resolve_environment(self, environment: Environment) -> Environment: ...

    async def for_environment(self, environment: Environment, mode: Mode) -> Session: ...


class ToolkitLookup(Protocol):
    async def lookup(
        self, environment: Environment, session: Session, stack_name: str
    ) -> DeployedStackInfo | None: ...


class DeploymentEngine(Protocol):
    async def deploy_stack(self, request: DeploymentRequest) -> DeploymentResult: ...
