"""CLI configuration management.

Handles persistent CLI configuration stored in ~/.stackboot/config.yaml.
Supports environment variable overrides and CLI flag precedence.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .bootstrap.props import DEFAULT_TOOLKIT_STACK_NAME
from .shared.logging import get_logger
from .shared.paths import CONFIG_FILE

logger = get_logger(__name__)

DEFAULT_OUTPUT_FORMAT = "table"
OUTPUT_FORMATS = ("table", "json")

# Environment variable mappings
ENV_VARS = {
    "profile": "STACKBOOT_PROFILE",
    "region": "STACKBOOT_REGION",
    "toolkit_stack_name": "STACKBOOT_TOOLKIT_STACK_NAME",
    "output_format": "STACKBOOT_OUTPUT_FORMAT",
}

CONFIG_KEYS = tuple(ENV_VARS)


@dataclass
class CLIConfig:
    """CLI configuration."""

    profile: str | None = None
    region: str | None = None
    toolkit_stack_name: str = DEFAULT_TOOLKIT_STACK_NAME
    output_format: str = DEFAULT_OUTPUT_FORMAT

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def override(self, key: str, value: Any) -> None:
        """Apply a command-line flag value (ignored when None)."""
        if value is None:
            return
        setattr(self, key, value)
        self._sources[key] = "command line"

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}


def get_config_path() -> Path:
    """Get the CLI config file path.

    Returns:
        Path to ~/.stackboot/config.yaml
    """
    return CONFIG_FILE


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config file", path=str(config_path), error=str(e))
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config file without a mapping", path=str(config_path))
        return {}
    return data


def load_config() -> CLIConfig:
    """Load CLI configuration.

    Precedence (highest to lowest):
    1. Environment variables
    2. Config file (~/.stackboot/config.yaml)
    3. Defaults

    Command-line flags are applied afterwards with CLIConfig.override().

    Returns:
        CLIConfig with values and sources
    """
    config = CLIConfig()
    sources: dict[str, str] = {key: "default" for key in CONFIG_KEYS}

    config_path = get_config_path()
    if config_path.exists():
        file_config = _read_config_file(config_path)
        for key in CONFIG_KEYS:
            if file_config.get(key) is not None:
                setattr(config, key, str(file_config[key]))
                sources[key] = "config file"

    for key, env_var in ENV_VARS.items():
        if os.environ.get(env_var):
            setattr(config, key, os.environ[env_var])
            sources[key] = "environment"

    if config.output_format not in OUTPUT_FORMATS:
        logger.warning(
            "Unknown output format, using default",
            output_format=config.output_format,
            source=sources["output_format"],
        )
        config.output_format = DEFAULT_OUTPUT_FORMAT
        sources["output_format"] = "default"

    config._sources = sources
    return config


def save_config(key: str, value: Any) -> None:
    """Save a config value to the config file.

    Args:
        key: Config key (profile, region, toolkit_stack_name, output_format)
        value: Value to save
    """
    if key not in CONFIG_KEYS:
        raise ValueError(f"Unknown config key: {key}. Valid keys: {', '.join(CONFIG_KEYS)}")

    config_path = get_config_path()

    existing: dict[str, Any] = {}
    if config_path.exists():
        existing = _read_config_file(config_path)

    existing[key] = value

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)


def unset_config(key: str) -> bool:
    """Remove a config value from the config file.

    Args:
        key: Config key to remove

    Returns:
        True if key was removed, False if not found
    """
    config_path = get_config_path()
    if not config_path.exists():
        return False

    existing = _read_config_file(config_path)
    if key not in existing:
        return False

    del existing[key]

    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)

    return True
