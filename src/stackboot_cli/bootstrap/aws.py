"""boto3 backed collaborators for bootstrap deployments.

Resolves environments and checks credentials with STS, looks up the toolkit
stack and deploys it through a CloudFormation change set. boto3 is
synchronous, so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..shared.logging import get_logger
from .collaborators import (
    DeployedStackInfo,
    DeploymentRequest,
    DeploymentResult,
    Mode,
    Session,
)
from .environment import UNKNOWN_ACCOUNT, UNKNOWN_REGION, Environment
from .errors import (
    DeploymentEngineError,
    EnvironmentResolutionError,
    SessionAcquisitionError,
    StackLookupError,
)
from .props import BOOTSTRAP_VERSION_OUTPUT
from .version import parse_version_marker

logger = get_logger(__name__)

# Bootstrap templates create IAM roles and may use macros
DEPLOY_CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]

# Statuses under which a stack exists in name only
NON_EXISTENT_STACK_STATUSES = {"REVIEW_IN_PROGRESS", "DELETE_COMPLETE"}

# A stack whose creation failed cannot be updated, only replaced
FAILED_CREATE_STATUS = "ROLLBACK_COMPLETE"

# Largest TemplateBody CloudFormation accepts inline
TEMPLATE_BODY_LIMIT = 51_200

# StatusReason prefixes of a change set that failed only because nothing changed
NO_CHANGE_REASONS = (
    "The submitted information didn't contain changes.",
    "No updates are to be performed.",
)

AWS_ERRORS = (BotoCoreError, ClientError)


def error_message(error: Exception) -> str:
    """Human-readable message of a boto3 error."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message") or str(error)
    return str(error)


def is_missing_stack(error: Exception) -> bool:
    """True if describe_stacks failed because the stack does not exist."""
    if not isinstance(error, ClientError):
        return False
    details = error.response.get("Error", {})
    return details.get("Code") == "ValidationError" and "does not exist" in details.get("Message", "")


class AwsClients:
    """boto3 clients for one named profile, cached per service and region."""

    def __init__(self, profile: str | None = None, session: Any = None):
        """Initialize the client factory.

        Args:
            profile: Named profile for the boto3 session.
            session: Prebuilt boto3 session (tests pass a mock).
        """
        self.profile = profile
        self._session = session
        self._clients: dict[tuple[str, str | None], Any] = {}

    @property
    def session(self) -> Any:
        if self._session is None:
            self._session = boto3.Session(profile_name=self.profile)
        return self._session

    @property
    def default_region(self) -> str | None:
        return self.session.region_name

    def client(self, service: str, region: str | None = None) -> Any:
        key = (service, region)
        if key not in self._clients:
            self._clients[key] = self.session.client(service, region_name=region)
        return self._clients[key]

    async def call(self, service: str, operation: str, region: str | None = None, **kwargs: Any) -> Any:
        """Run one API operation in a worker thread."""
        logger.debug("AWS call", service=service, operation=operation, region=region)
        method = getattr(self.client(service, region), operation)
        return await asyncio.to_thread(method, **kwargs)

    async def wait(self, service: str, waiter_name: str, region: str | None = None, **kwargs: Any) -> None:
        """Block on a boto3 waiter in a worker thread."""
        logger.debug("AWS wait", service=service, waiter=waiter_name, region=region)
        waiter = self.client(service, region).get_waiter(waiter_name)
        await asyncio.to_thread(waiter.wait, **kwargs)


class AwsSdkProvider:
    """Resolve environments and obtain sessions from the boto3 credential chain."""

    def __init__(self, clients: AwsClients | None = None, default_region: str | None = None):
        self.clients = clients or AwsClients()
        self.default_region = default_region

    async def resolve_environment(self, environment: Environment) -> Environment:
        """Replace placeholder account and region with the session defaults.

        Raises:
            EnvironmentResolutionError: If a placeholder cannot be resolved.
        """
        if environment.is_resolved:
            return environment

        try:
            region = environment.region
            if region == UNKNOWN_REGION:
                region = self.default_region or self.clients.default_region
            if not region:
                raise EnvironmentResolutionError(
                    message="Unable to determine the default AWS region. "
                    "Pass an environment (aws://ACCOUNT/REGION) or configure a region.",
                    data={"environment": environment.name},
                )

            account = environment.account
            if account == UNKNOWN_ACCOUNT:
                account = (await self._caller_identity(region))["Account"]
        except AWS_ERRORS as e:
            raise EnvironmentResolutionError(
                message=f"Unable to resolve environment '{environment.name}': {error_message(e)}",
                data={"environment": environment.name},
            ) from e

        resolved = Environment(account, region)
        logger.debug("Resolved environment", environment=environment.name, resolved=resolved.name)
        return resolved

    async def for_environment(self, environment: Environment, mode: Mode) -> Session:
        """Check credentials for the environment and return a session.

        Raises:
            SessionAcquisitionError: If there are no credentials, or they belong
                to another account.
        """
        if not environment.is_resolved:
            raise EnvironmentResolutionError(
                message=f"Environment '{environment.name}' must be resolved first",
                data={"environment": environment.name},
            )

        try:
            identity = await self._caller_identity(environment.region)
        except AWS_ERRORS as e:
            raise SessionAcquisitionError(
                message=f"Need to perform AWS calls for account {environment.account}, "
                f"but no credentials have been configured: {error_message(e)}",
                data={"environment": environment.name},
            ) from e

        caller_account = identity.get("Account")
        if caller_account != environment.account:
            raise SessionAcquisitionError(
                message=f"Need to perform AWS calls for account {environment.account}, "
                f"but the current credentials are for {caller_account}",
                data={"environment": environment.name, "caller_account": caller_account},
            )

        return Session(
            environment=environment,
            mode=mode,
            profile=self.clients.profile,
            caller_arn=identity.get("Arn"),
        )

    async def _caller_identity(self, region: str) -> dict[str, Any]:
        return await self.clients.call("sts", "get_caller_identity", region=region)


async def describe_stack(clients: AwsClients, stack_name: str, region: str) -> dict[str, Any] | None:
    """Describe one stack, None if it does not exist.

    Raises the boto3 error for any other failure.
    """
    try:
        response = await clients.call("cloudformation", "describe_stacks", region=region, StackName=stack_name)
    except ClientError as e:
        if is_missing_stack(e):
            return None
        raise
    stacks = response.get("Stacks") or []
    return stacks[0] if stacks else None


class CloudFormationToolkitLookup:
    """Find the deployed toolkit stack with describe_stacks."""

    def __init__(self, clients: AwsClients | None = None):
        self.clients = clients or AwsClients()

    async def lookup(
        self, environment: Environment, session: Session, stack_name: str
    ) -> DeployedStackInfo | None:
        """Look up a toolkit stack.

        Returns:
            DeployedStackInfo, or None if the stack does not exist.

        Raises:
            StackLookupError: If the stack could not be described.
        """
        try:
            stack = await describe_stack(self.clients, stack_name, environment.region)
        except AWS_ERRORS as e:
            raise StackLookupError(
                message=f"Could not look up toolkit stack '{stack_name}': {error_message(e)}",
                data={"stack_name": stack_name, "environment": environment.name},
            ) from e

        if stack is None:
            logger.debug("Toolkit stack not found", stack_name=stack_name)
            return None

        status = stack.get("StackStatus")
        if status in NON_EXISTENT_STACK_STATUSES:
            logger.debug("Toolkit stack exists in name only", stack_name=stack_name, status=status)
            return None

        outputs = _outputs_to_dict(stack)
        return DeployedStackInfo(
            name=stack.get("StackName", stack_name),
            version=parse_version_marker(outputs.get(BOOTSTRAP_VERSION_OUTPUT)) or 0,
            stack_id=stack.get("StackId"),
            status=status,
            outputs=outputs,
            termination_protection=bool(stack.get("EnableTerminationProtection", False)),
        )


class CloudFormationDeployer:
    """Deploy stack artifacts through a CloudFormation change set."""

    def __init__(self, clients: AwsClients | None = None, waiter_delay: int = 5):
        self.clients = clients or AwsClients()
        self.waiter_delay = waiter_delay

    def build_parameters(
        self, request: DeploymentRequest, previous: set[str] | None
    ) -> list[dict[str, Any]]:
        """Build change set parameters.

        Args:
            request: The deployment request.
            previous: Parameter keys of the deployed stack, None on create.

        Parameters without a value, and declared parameters the request
        leaves out, keep their deployed value on update.
        """
        parameters = [
            {"ParameterKey": key, "ParameterValue": value}
            for key, value in request.parameters.items()
            if value is not None
        ]
        if previous is None:
            return parameters

        given = {p["ParameterKey"] for p in parameters}
        declared = set(request.stack.template.get("Parameters") or {})
        for key in sorted((previous & declared) - given):
            parameters.append({"ParameterKey": key, "UsePreviousValue": True})
        return parameters

    def build_change_set_args(
        self,
        request: DeploymentRequest,
        existing: dict[str, Any] | None,
        change_set_name: str,
    ) -> dict[str, Any]:
        """Build the create_change_set arguments for a request."""
        updating = existing is not None and existing.get("StackStatus") not in NON_EXISTENT_STACK_STATUSES
        previous = {p["ParameterKey"] for p in existing.get("Parameters") or []} if updating else None

        args: dict[str, Any] = {
            "StackName": request.stack.stack_name,
            "ChangeSetName": change_set_name,
            "ChangeSetType": "UPDATE" if updating else "CREATE",
            "TemplateBody": request.stack.template_body(),
            "Parameters": self.build_parameters(request, previous),
            "Capabilities": DEPLOY_CAPABILITIES,
            "Description": f"stackboot bootstrap of {request.stack.stack_name}",
        }
        if request.tags:
            args["Tags"] = [{"Key": k, "Value": v} for k, v in request.tags.items()]
        if request.role_arn:
            args["RoleARN"] = request.role_arn
        return args

    async def deploy_stack(self, request: DeploymentRequest) -> DeploymentResult:
        """Deploy the request's stack artifact.

        Raises:
            DeploymentEngineError: If any CloudFormation call fails.
        """
        stack = request.stack
        log = logger.bind(stack_name=stack.stack_name, environment=request.environment.name)

        body_size = len(stack.template_body().encode())
        if body_size > TEMPLATE_BODY_LIMIT:
            raise DeploymentEngineError(
                message=f"Template for stack '{stack.stack_name}' is {body_size} bytes, "
                f"over the {TEMPLATE_BODY_LIMIT} byte limit for inline templates",
                data={"stack_name": stack.stack_name, "template_bytes": body_size},
            )

        try:
            return await self._deploy(request, log)
        except AWS_ERRORS as e:
            raise DeploymentEngineError(
                message=f"Failed to deploy stack '{stack.stack_name}': {error_message(e)}",
                data={"stack_name": stack.stack_name, "environment": request.environment.name},
            ) from e

    async def _deploy(self, request: DeploymentRequest, log: Any) -> DeploymentResult:
        stack_name = request.stack.stack_name
        region = request.environment.region
        change_set_name = f"stackboot-deploy-{uuid.uuid4().hex[:12]}"

        existing = await describe_stack(self.clients, stack_name, region)
        if existing is not None and existing.get("StackStatus") == FAILED_CREATE_STATUS:
            log.warning("Deleting stack left over from a failed create", status=FAILED_CREATE_STATUS)
            await self.clients.call("cloudformation", "delete_stack", region=region, StackName=stack_name)
            await self.clients.wait(
                "cloudformation",
                "stack_delete_complete",
                region=region,
                StackName=stack_name,
                WaiterConfig={"Delay": self.waiter_delay},
            )
            existing = None

        args = self.build_change_set_args(request, existing, change_set_name)
        log.info("Creating change set", change_set=change_set_name, type=args["ChangeSetType"])
        await self.clients.call("cloudformation", "create_change_set", region=region, **args)

        noop = False
        try:
            await self.clients.wait(
                "cloudformation",
                "change_set_create_complete",
                region=region,
                StackName=stack_name,
                ChangeSetName=change_set_name,
                WaiterConfig={"Delay": self.waiter_delay},
            )
        except WaiterError:
            description = await self.clients.call(
                "cloudformation",
                "describe_change_set",
                region=region,
                StackName=stack_name,
                ChangeSetName=change_set_name,
            )
            if not str(description.get("StatusReason", "")).startswith(NO_CHANGE_REASONS):
                raise
            noop = True
            log.info("No changes to deploy")
            await self.clients.call(
                "cloudformation",
                "delete_change_set",
                region=region,
                StackName=stack_name,
                ChangeSetName=change_set_name,
            )

        if not request.execute:
            log.info("Change set created, not executed", change_set=change_set_name)
            return DeploymentResult(stack_name=stack_name, noop=noop, executed=False)

        if not noop:
            await self.clients.call(
                "cloudformation",
                "execute_change_set",
                region=region,
                StackName=stack_name,
                ChangeSetName=change_set_name,
            )
            waiter_name = (
                "stack_create_complete" if args["ChangeSetType"] == "CREATE" else "stack_update_complete"
            )
            await self.clients.wait(
                "cloudformation",
                waiter_name,
                region=region,
                StackName=stack_name,
                WaiterConfig={"Delay": self.waiter_delay},
            )

        await self.clients.call(
            "cloudformation",
            "update_termination_protection",
            region=region,
            StackName=stack_name,
            EnableTerminationProtection=request.stack.termination_protection,
        )

        deployed = await describe_stack(self.clients, stack_name, region) or {}
        return DeploymentResult(
            stack_name=stack_name,
            noop=noop,
            stack_arn=deployed.get("StackId"),
            outputs=_outputs_to_dict(deployed),
        )


def _outputs_to_dict(stack: dict[str, Any]) -> dict[str, str]:
    return {o["OutputKey"]: o.get("OutputValue", "") for o in stack.get("Outputs") or []}
