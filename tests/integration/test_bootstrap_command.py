"""Integration tests for the bootstrap command.

Tests the full CLI flow with fake collaborators in place of boto3.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from stackboot_cli.bootstrap import (
    DeploymentResult,
    SessionAcquisitionError,
)
from stackboot_cli.commands.bootstrap import bootstrap
from stackboot_cli.main import cli

pytestmark = pytest.mark.bootstrap


@pytest.fixture
def runner():
    """Create CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's config file and environment."""
    for var in (
        "STACKBOOT_PROFILE",
        "STACKBOOT_REGION",
        "STACKBOOT_TOOLKIT_STACK_NAME",
        "STACKBOOT_OUTPUT_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / ".stackboot" / "config.yaml"
    with patch("stackboot_cli.config.get_config_path", return_value=path):
        with patch("stackboot_cli.main.get_config_path", return_value=path):
            yield path


@pytest.fixture
def fake_aws(collaborators):
    """Replace the boto3 collaborators with fakes."""
    fakes = (
        collaborators["sdk_provider"],
        collaborators["toolkit_lookup"],
        collaborators["engine"],
    )
    with patch("stackboot_cli.commands.bootstrap._aws_collaborators", return_value=fakes) as mock:
        yield mock


@pytest.fixture
def template_file(tmp_path, make_template):
    """Write a template to disk and return its path."""

    def _write(**markers) -> str:
        path = tmp_path / "bootstrap.json"
        path.write_text(json.dumps(make_template(**markers)))
        return str(path)

    return _write


class TestBootstrapDeploy:
    """Tests for `stackboot bootstrap`."""

    def test_fresh_install(self, runner, fake_aws, fake_state, template_file):
        result = runner.invoke(
            cli,
            ["bootstrap", "-e", "aws://123456789012/eu-west-1", "--template", template_file(output_version="6")],
        )

        assert result.exit_code == 0, result.output
        assert "template version 6" in result.output
        assert "CDKToolkit (aws://123456789012/eu-west-1): bootstrapped" in result.output
        assert fake_state.requests[0].environment.region == "eu-west-1"

    def test_bundled_template(self, runner, fake_aws, fake_state):
        result = runner.invoke(cli, ["bootstrap"])

        assert result.exit_code == 0, result.output
        assert "template version 1" in result.output
        assert "CdkBootstrapVersion" in fake_state.requests[0].stack.template["Resources"]

    def test_downgrade_rejected(self, runner, fake_aws, fake_state, template_file, deployed_stack):
        fake_state.deployed = deployed_stack(7)

        result = runner.invoke(cli, ["bootstrap", "--template", template_file(resource_version=5)])

        assert result.exit_code == 1
        assert "from version '7' to version '5'" in result.output
        assert "--force" in result.output
        assert fake_state.requests == []

    def test_forced_downgrade(self, runner, fake_aws, fake_state, template_file, deployed_stack):
        fake_state.deployed = deployed_stack(7)

        result = runner.invoke(
            cli, ["bootstrap", "--template", template_file(resource_version=5), "--force"]
        )

        assert result.exit_code == 0, result.output
        assert fake_state.requests[0].force is True

    def test_options(self, runner, fake_aws, fake_state, template_file):
        result = runner.invoke(
            cli,
            [
                "bootstrap",
                "--template",
                template_file(),
                "--toolkit-stack-name",
                "Toolkit2",
                "--role-arn",
                "arn:aws:iam::123456789012:role/cfn",
                "--tag",
                "team=platform",
                "--parameter",
                "Qualifier=abc",
                "--parameter",
                "TrustedAccounts",
                "--termination-protection",
                "--no-execute",
            ],
        )

        assert result.exit_code == 0, result.output
        request = fake_state.requests[0]
        assert request.stack.stack_name == "Toolkit2"
        assert request.role_arn == "arn:aws:iam::123456789012:role/cfn"
        assert request.tags == {"team": "platform"}
        assert request.parameters == {"Qualifier": "abc", "TrustedAccounts": None}
        assert request.stack.termination_protection is True
        assert request.execute is False
        assert "Change set created" in result.output

    def test_toolkit_stack_name_from_config(self, runner, fake_aws, fake_state, monkeypatch):
        monkeypatch.setenv("STACKBOOT_TOOLKIT_STACK_NAME", "ConfiguredToolkit")

        result = runner.invoke(cli, ["bootstrap"])

        assert result.exit_code == 0, result.output
        assert "lookup:ConfiguredToolkit" in fake_state.calls

    def test_invalid_tag(self, runner, fake_aws):
        result = runner.invoke(cli, ["bootstrap", "--tag", "novalue"])

        assert result.exit_code == 2
        assert "Expected KEY=VALUE" in result.output

    def test_invalid_environment(self, runner, fake_aws, fake_state):
        result = runner.invoke(cli, ["bootstrap", "-e", "eu-west-1"])

        assert result.exit_code == 1
        assert "aws://ACCOUNT/REGION" in result.output
        assert fake_state.calls == []

    def test_missing_template(self, runner, fake_aws, tmp_path):
        result = runner.invoke(cli, ["bootstrap", "--template", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Could not read template" in result.output

    def test_collaborator_error(self, runner, fake_aws, fake_state):
        fake_state.session_error = SessionAcquisitionError(message="no credentials configured")

        result = runner.invoke(cli, ["bootstrap"])

        assert result.exit_code == 1
        assert "no credentials configured" in result.output

    def test_json_output(self, runner, fake_aws, fake_state):
        fake_state.result = DeploymentResult(
            stack_name="CDKToolkit", noop=True, outputs={"BucketName": "assets"}
        )

        result = runner.invoke(cli, ["--json", "bootstrap"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["noop"] is True
        assert data["outputs"] == {"BucketName": "assets"}

    def test_json_downgrade_error(self, runner, fake_aws, fake_state, template_file, deployed_stack):
        fake_state.deployed = deployed_stack(7)

        result = runner.invoke(
            cli, ["--json", "bootstrap", "--template", template_file(output_version="5")]
        )

        assert result.exit_code == 1
        error = json.loads(result.stdout)["error"]
        assert error["type"] == "DowngradeRejected"
        assert error["data"]["proposed_version"] == 5
        assert error["data"]["deployed_version"] == 7

    def test_standalone_group(self, runner, fake_aws, fake_state):
        """The bootstrap group works without the root command."""
        result = runner.invoke(bootstrap, [])

        assert result.exit_code == 0, result.output
        assert fake_state.calls[-1] == "deploy_stack"

    def test_profile_flag_reaches_collaborators(self, runner, fake_aws):
        result = runner.invoke(cli, ["--profile", "ops", "--region", "ap-south-1", "bootstrap"])

        assert result.exit_code == 0, result.output
        config = fake_aws.call_args.args[0]
        assert config.profile == "ops"
        assert config.region == "ap-south-1"


class TestBootstrapStatus:
    """Tests for `stackboot bootstrap status`."""

    def test_no_stack(self, runner, fake_aws):
        result = runner.invoke(cli, ["bootstrap", "status"])

        assert result.exit_code == 0, result.output
        assert "No toolkit stack 'CDKToolkit' in aws://123456789012/us-east-1" in result.output

    def test_existing_stack(self, runner, fake_aws, fake_state, deployed_stack):
        fake_state.deployed = deployed_stack(14)

        result = runner.invoke(cli, ["bootstrap", "status", "-e", "aws://123456789012/eu-west-1"])

        assert result.exit_code == 0, result.output
        assert "Version: 14" in result.output
        assert "Status:  UPDATE_COMPLETE" in result.output

    @pytest.mark.parametrize(
        ("args", "option"),
        [
            (["--force"], "--force"),
            (["-e", "aws://123456789012/eu-west-1"], "--environment"),
            (["--no-execute"], "--execute"),
        ],
    )
    def test_deploy_options_rejected(self, runner, fake_aws, fake_state, args, option):
        result = runner.invoke(cli, ["bootstrap", *args, "status"])

        assert result.exit_code == 2
        assert f"{option} cannot be combined with the 'status' subcommand" in result.output
        assert fake_state.calls == []

    def test_json(self, runner, fake_aws, fake_state, deployed_stack):
        fake_state.deployed = deployed_stack(14)

        result = runner.invoke(cli, ["--json", "bootstrap", "status"])

        data = json.loads(result.stdout)
        assert data["stack"]["version"] == 14
        assert data["environment"] == "aws://123456789012/us-east-1"


class TestBootstrapVersion:
    """Tests for `stackboot bootstrap version`."""

    def test_bundled(self, runner):
        result = runner.invoke(cli, ["bootstrap", "version"])

        assert result.exit_code == 0
        assert result.output.strip() == "1"

    def test_template_file(self, runner, template_file):
        path = template_file(output_version="21")

        result = runner.invoke(cli, ["--json", "bootstrap", "version", "--template", path])

        assert json.loads(result.stdout) == {"template": path, "version": 21}


class TestConfigCommands:
    """Tests for `stackboot config`."""

    def test_set_show_unset(self, runner, isolated_config):
        result = runner.invoke(cli, ["config", "set", "region", "eu-central-1"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["--json", "config", "show"])
        data = json.loads(result.stdout)
        assert data["values"]["region"] == "eu-central-1"
        assert data["sources"]["region"] == "config file"

        result = runner.invoke(cli, ["config", "unset", "region"])
        assert "Unset region" in result.output

    def test_show_table(self, runner):
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "Stackboot CLI Configuration" in result.output
        assert "toolkit_stack_name:" in result.output
        assert "CDKToolkit  (default)" in result.output

    def test_set_invalid_output_format(self, runner):
        result = runner.invoke(cli, ["config", "set", "output_format", "xml"])

        assert result.exit_code == 1

    def test_set_unknown_key(self, runner):
        result = runner.invoke(cli, ["config", "set", "server", "x"])

        assert result.exit_code == 2
