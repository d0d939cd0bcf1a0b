"""Configuration management for garmin_connect."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _get_path_env(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    if not value:
        return default
    return Path(value).expanduser()


class Config:
    """Application configuration."""

    # Base paths
    HOME_DIR = Path.home() / ".garmin_connect"
    TOKEN_DIR = _get_path_env("GARMIN_TOKEN_DIR", HOME_DIR / "tokens")
    LOGS_DIR = _get_path_env("GARMIN_LOGS_DIR", HOME_DIR / "logs")
    CREDENTIALS_FILE = _get_path_env(
        "GARMIN_CREDENTIALS_FILE", Path.cwd() / "garmin.config.json"
    )

    # Service
    GARMIN_DOMAIN = os.environ.get("GARMIN_DOMAIN", "garmin.com")

    # OAuth consumer pair used to sign the ticket and exchange requests
    OAUTH_CONSUMER_URL = os.environ.get(
        "GARMIN_OAUTH_CONSUMER_URL",
        "https://thegarth.s3.amazonaws.com/oauth_consumer.json",
    )
    OAUTH_CONSUMER_KEY = os.environ.get("GARMIN_CONSUMER_KEY")
    OAUTH_CONSUMER_SECRET = os.environ.get("GARMIN_CONSUMER_SECRET")

    # Security
    ENCRYPTION_KEY = os.environ.get("GARMIN_ENCRYPTION_KEY")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # API Settings
    REQUEST_TIMEOUT = _get_int_env("GARMIN_REQUEST_TIMEOUT", 30)  # seconds
    # How long a caller waits for a session recovery started by another thread
    REFRESH_WAIT_TIMEOUT = _get_int_env("GARMIN_REFRESH_WAIT_TIMEOUT", 120)  # seconds

    def __repr__(self):
        return f"Config(DOMAIN={self.GARMIN_DOMAIN}, TOKEN_DIR={self.TOKEN_DIR})"
