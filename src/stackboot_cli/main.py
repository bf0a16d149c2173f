"""CLI main entry point."""

import sys

import click

from .commands.bootstrap import bootstrap
from .config import CONFIG_KEYS, OUTPUT_FORMATS, get_config_path, load_config, save_config, unset_config
from .formatters import print_config_yaml, print_json
from .shared.logging import configure_logging


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--profile", default=None, help="AWS named profile")
@click.option("--region", default=None, help="Default AWS region")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write logs to file")
@click.option("--log-json", is_flag=True, help="Log JSON lines")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: int,
    json_output: bool,
    profile: str | None,
    region: str | None,
    log_file: str | None,
    log_json: bool,
) -> None:
    """Provision and upgrade the toolkit stack."""
    configure_logging(verbose, log_file=log_file, json_output=log_json)

    config = load_config()
    config.override("profile", profile)
    config.override("region", region)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["json_output"] = json_output or config.output_format == "json"


cli.add_command(bootstrap)


@cli.group()
def config() -> None:
    """Manage CLI configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration and where each value comes from."""
    cli_config = ctx.obj["config"]
    values = cli_config.to_dict()
    sources = {key: cli_config.get_source(key) for key in values}

    if ctx.obj["json_output"]:
        print_json({"path": str(get_config_path()), "values": values, "sources": sources})
        return

    click.echo("Stackboot CLI Configuration")
    click.echo(f"File: {get_config_path()}\n")
    print_config_yaml({key: f"{values[key]}  ({sources[key]})" for key in values})


@config.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a configuration value."""
    if key == "output_format" and value not in OUTPUT_FORMATS:
        click.echo(f"Error: output_format must be one of: {', '.join(OUTPUT_FORMATS)}", err=True)
        sys.exit(1)

    save_config(key, value)
    click.echo(f"✓ Set {key} = {value}")


@config.command("unset")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
def config_unset(key: str) -> None:
    """Remove a configuration value."""
    if unset_config(key):
        click.echo(f"✓ Unset {key}")
    else:
        click.echo(f"{key} is not set in {get_config_path()}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
