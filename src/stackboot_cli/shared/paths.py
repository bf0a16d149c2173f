"""Path management for stackboot.

Everything stackboot persists lives under ~/.stackboot/.
"""

from pathlib import Path

# Base directory for all stackboot data
STACKBOOT_DIR = Path.home() / ".stackboot"

# CLI configuration file
CONFIG_FILE = STACKBOOT_DIR / "config.yaml"
