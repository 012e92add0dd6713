"""
Runtime configuration for the Taskboard API.

All settings are read from environment variables once, at import time.
Invalid values fall back to safe defaults with a warning.
"""

import logging
import os
import secrets
from typing import List

logger = logging.getLogger(__name__)

APP_NAME = "Taskboard API"
APP_VERSION = "1.0.0"

DEFAULT_PORT = 4000
VALID_LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def is_production_like() -> bool:
    """
    Check if the current environment is production-like (production or staging).

    Returns:
        True if ENVIRONMENT is "production" or "staging", False otherwise
    """
    env = os.environ.get("ENVIRONMENT", "development").lower()
    return env in ("production", "staging")


def parse_port(value: str | None) -> int:
    """
    Parse a TCP port, falling back to DEFAULT_PORT for missing or bad values.

    Args:
        value: Raw PORT value from the environment

    Returns:
        A non-negative port number
    """
    if not value:
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError:
        logger.warning(f"⚠️  Invalid PORT value '{value}'. Using default of {DEFAULT_PORT}.")
        return DEFAULT_PORT
    if port < 0:
        logger.warning(f"⚠️  PORT={port} is negative. Using default of {DEFAULT_PORT}.")
        return DEFAULT_PORT
    return port


def parse_log_level(value: str | None) -> str:
    """Return a valid logging level name, defaulting to INFO."""
    if value and value.upper() in VALID_LOG_LEVELS:
        return value.upper()
    if value:
        logger.warning(
            f"⚠️  Unsupported LOG_LEVEL={value}. Using INFO. "
            f"Supported: {', '.join(VALID_LOG_LEVELS)}"
        )
    return "INFO"


def parse_allowed_origins(value: str | None) -> List[str]:
    """Split a comma-separated origin list, dropping blanks."""
    if value is None:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def load_basic_secret(value: str | None) -> str:
    """
    Return the shared secret protecting the admin endpoints.

    Raises:
        ValueError: if the secret is missing in a production-like environment
    """
    if value:
        return value
    if is_production_like():
        raise ValueError(
            "BASIC_SECRET environment variable is required in production. "
            "Generate a secure value with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    logger.warning(
        "⚠️  BASIC_SECRET not set! Using temporary development secret. "
        "Admin endpoints will be unreachable across restarts."
    )
    return "dev-insecure-basic-" + secrets.token_urlsafe(16)


ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
PORT = parse_port(os.environ.get("PORT"))
LOG_LEVEL = parse_log_level(os.environ.get("LOG_LEVEL"))
ALLOWED_ORIGINS = parse_allowed_origins(os.environ.get("ALLOWED_ORIGINS"))
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskboard.db")
BASIC_SECRET = load_basic_secret(os.environ.get("BASIC_SECRET"))
