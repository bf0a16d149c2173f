"""Target environment addressing.

Environments are written as ``aws://ACCOUNT/REGION``. Either part may be a
placeholder, which the SDK provider replaces with the session's defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import EnvironmentResolutionError

UNKNOWN_ACCOUNT = "unknown-account"
UNKNOWN_REGION = "unknown-region"

_ENV_RE = re.compile(r"^aws://([a-z0-9\-]+)/([a-z0-9\-]+)/?$")


@dataclass(frozen=True)
class Environment:
    """An account/region pair."""

    account: str
    region: str

    @property
    def name(self) -> str:
        return format_environment(self.account, self.region)

    @property
    def is_resolved(self) -> bool:
        return self.account != UNKNOWN_ACCOUNT and self.region != UNKNOWN_REGION

    def __str__(self) -> str:
        return self.name


def format_environment(account: str, region: str) -> str:
    """Format an account/region pair as ``aws://ACCOUNT/REGION``."""
    return f"aws://{account}/{region}"


def parse_environment(value: str | None) -> Environment:
    """Parse an environment string.

    Args:
        value: ``aws://ACCOUNT/REGION``, or None for the session defaults.

    Returns:
        Parsed Environment.

    Raises:
        EnvironmentResolutionError: If value is not a valid environment string.
    """
    if not value:
        return Environment(UNKNOWN_ACCOUNT, UNKNOWN_REGION)

    match = _ENV_RE.match(value.strip())
    if not match:
        raise EnvironmentResolutionError(
            message=f"Invalid environment '{value}'. Expected format: aws://ACCOUNT/REGION",
            data={"environment": value},
        )
    return Environment(match.group(1), match.group(2))
