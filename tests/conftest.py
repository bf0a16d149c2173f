"""Shared test fixtures for stackboot-cli tests.

This module provides fakes for the bootstrap collaborators:
- FakeSdkProvider: resolves environments and hands out sessions
- FakeToolkitLookup: returns a configured deployed stack (or none)
- FakeEngine: records deployment requests
All of them append to a shared call log so tests can check ordering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from stackboot_cli.bootstrap import (
    DeployedStackInfo,
    DeploymentRequest,
    DeploymentResult,
    Environment,
    Mode,
    Session,
)

# =============================================================================
# Fake collaborators
# =============================================================================


@dataclass
class FakeState:
    """State shared by the fakes to configure responses and track calls."""

    calls: list[str] = field(default_factory=list)
    requests: list[DeploymentRequest] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)

    # Response configuration
    default_account: str = "123456789012"
    default_region: str = "us-east-1"
    deployed: DeployedStackInfo | None = None
    result: DeploymentResult | None = None

    # Forced failures
    resolve_error: Exception | None = None
    session_error: Exception | None = None
    lookup_error: Exception | None = None
    deploy_error: Exception | None = None


class FakeSdkProvider:
    def __init__(self, state: FakeState):
        self.state = state

    async def resolve_environment(self, environment: Environment) -> Environment:
        self.state.calls.append("resolve_environment")
        if self.state.resolve_error:
            raise self.state.resolve_error
        account = (
            self.state.default_account
            if environment.account == "unknown-account"
            else environment.account
        )
        region = (
            self.state.default_region if environment.region == "unknown-region" else environment.region
        )
        return Environment(account, region)

    async def for_environment(self, environment: Environment, mode: Mode) -> Session:
        self.state.calls.append("for_environment")
        if self.state.session_error:
            raise self.state.session_error
        session = Session(environment=environment, mode=mode, profile="test")
        self.state.sessions.append(session)
        return session


class FakeToolkitLookup:
    def __init__(self, state: FakeState):
        self.state = state

    async def lookup(
        self, environment: Environment, session: Session, stack_name: str
    ) -> DeployedStackInfo | None:
        self.state.calls.append(f"lookup:{stack_name}")
        if self.state.lookup_error:
            raise self.state.lookup_error
        return self.state.deployed


class FakeEngine:
    def __init__(self, state: FakeState):
        self.state = state

    async def deploy_stack(self, request: DeploymentRequest) -> DeploymentResult:
        self.state.calls.append("deploy_stack")
        self.state.requests.append(request)
        if self.state.deploy_error:
            raise self.state.deploy_error
        return self.state.result or DeploymentResult(
            stack_name=request.stack.stack_name,
            stack_arn=f"arn:aws:cloudformation:{request.environment.region}:"
            f"{request.environment.account}:stack/{request.stack.stack_name}/abc",
            executed=request.execute,
        )


@pytest.fixture
def fake_state() -> FakeState:
    """Fixture providing fake collaborator state for configuration."""
    return FakeState()


@pytest.fixture
def collaborators(fake_state: FakeState) -> dict[str, Any]:
    """Fixture providing keyword arguments for deploy_bootstrap_stack."""
    return {
        "sdk_provider": FakeSdkProvider(fake_state),
        "toolkit_lookup": FakeToolkitLookup(fake_state),
        "engine": FakeEngine(fake_state),
    }


# =============================================================================
# Sample templates
# =============================================================================


def _make_template(
    output_version: Any = None,
    resource_version: Any = None,
) -> dict[str, Any]:
    template: dict[str, Any] = {
        "Resources": {
            "StagingBucket": {"Type": "AWS::S3::Bucket"},
        },
        "Outputs": {
            "BucketName": {"Value": {"Ref": "StagingBucket"}},
        },
    }
    if output_version is not None:
        template["Outputs"]["BootstrapVersion"] = {"Value": output_version}
    if resource_version is not None:
        template["Resources"]["CdkBootstrapVersion"] = {
            "Type": "AWS::SSM::Parameter",
            "Properties": {"Type": "String", "Value": resource_version},
        }
    return template


@pytest.fixture
def make_template():
    """Factory for minimal bootstrap templates with optional version markers."""
    return _make_template


@pytest.fixture
def deployed_stack():
    """Factory for DeployedStackInfo snapshots."""

    def _make(version: int, name: str = "CDKToolkit") -> DeployedStackInfo:
        return DeployedStackInfo(
            name=name,
            version=version,
            stack_id=f"arn:aws:cloudformation:us-east-1:123456789012:stack/{name}/abc",
            status="UPDATE_COMPLETE",
            outputs={"BootstrapVersion": str(version)},
        )

    return _make
