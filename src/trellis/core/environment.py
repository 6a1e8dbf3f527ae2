"""
Environment configuration for the Trellis runtime.

The TRELLIS_ENV environment variable selects the runtime environment:
    - development (default): console logging at DEBUG, tracebacks in responses
    - test: file logging only
    - production: INFO logging, no internal details in responses

Usage:
    from trellis.core.environment import get_trellis_env

    env = get_trellis_env()  # Returns TrellisEnv.DEVELOPMENT, TEST or PRODUCTION
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum

TRELLIS_ENV_VAR = "TRELLIS_ENV"
TRELLIS_DATABASE_VAR = "TRELLIS_DATABASE"


class TrellisEnv(StrEnum):
    """Runtime environment values."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


def get_trellis_env() -> TrellisEnv:
    """Get the current environment from TRELLIS_ENV.

    Returns:
        The current environment. Defaults to development if TRELLIS_ENV is
        not set or invalid.
    """
    env_value = os.environ.get(TRELLIS_ENV_VAR, "").lower().strip()

    if env_value in ("production", "prod"):
        return TrellisEnv.PRODUCTION
    elif env_value in ("test", "testing"):
        return TrellisEnv.TEST
    elif env_value in ("development", "dev", ""):
        return TrellisEnv.DEVELOPMENT
    else:
        logging.getLogger(__name__).warning(
            "Unknown TRELLIS_ENV value '%s'. "
            "Valid values: development, test, production. Defaulting to development.",
            env_value,
        )
        return TrellisEnv.DEVELOPMENT


def is_production() -> bool:
    return get_trellis_env() == TrellisEnv.PRODUCTION


def default_log_level() -> str:
    """Log level used when the manifest does not set one."""
    if get_trellis_env() == TrellisEnv.DEVELOPMENT:
        return "DEBUG"
    return "INFO"


def database_override() -> str | None:
    """SQLite path from TRELLIS_DATABASE, if set."""
    value = os.environ.get(TRELLIS_DATABASE_VAR, "").strip()
    return value or None
