"""Logging configuration for stackboot.

structlog renders each event and hands the finished line to a standard
logging handler: stderr by default, or a log file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

# Indexed by the number of -v flags
_VERBOSITY = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(
    verbose: int = 0,
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure logging for one CLI invocation.

    Args:
        verbose: Number of -v flags (0 warning, 1 info, 2 or more debug)
        log_file: Append JSON lines to this file instead of stderr
        json_output: Render JSON lines on stderr
    """
    level = _VERBOSITY[min(max(verbose, 0), len(_VERBOSITY) - 1)]

    handler: logging.Handler
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_file))
        json_output = True
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(level=level, handlers=[handler], format="%(message)s", force=True)

    processors: list = [
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
    ]
    if json_output:
        processors += [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # Each invocation reconfigures, so loggers are not cached
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
