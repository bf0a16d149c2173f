"""Shared modules for stackboot-cli."""

from .logging import configure_logging, get_logger
from .paths import CONFIG_FILE, STACKBOOT_DIR

__all__ = [
    # Paths
    "STACKBOOT_DIR",
    "CONFIG_FILE",
    # Logging
    "configure_logging",
    "get_logger",
]
