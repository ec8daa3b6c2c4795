"""Configuration module - loads and validates environment variables."""

import os
from pathlib import Path

import pytz
from dotenv import load_dotenv

from .ics.encoder import EncoderOptions

# Load .env file from project root
load_dotenv()

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_DIR = PROJECT_ROOT / "output"
LOG_DIR = PROJECT_ROOT / "logs"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")

    # Gemini AI
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-flash-latest")

    # Timezone used for event times without an offset
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # ICS output
    ICS_PRODUCT_NAME: str = os.getenv("ICS_PRODUCT_NAME", "SnapCal")
    ICS_UID_NAMESPACE: str = os.getenv("ICS_UID_NAMESPACE", "snapcal")
    ICS_UID_STRATEGY: str = os.getenv("ICS_UID_STRATEGY", "sequence")
    ICS_ESCAPE_TEXT: bool = _env_bool("ICS_ESCAPE_TEXT", True)
    ICS_END_POLICY: str = os.getenv("ICS_END_POLICY", "allow")
    ICS_ON_INVALID: str = os.getenv("ICS_ON_INVALID", "skip")
    ICS_FOLD_LINES: bool = _env_bool("ICS_FOLD_LINES", True)
    ICS_FILENAME: str = os.getenv("ICS_FILENAME", "calendar-events.ics")

    # CLI output directory
    OUTPUT_DIR: str = os.getenv("OUTPUT_DIR", str(OUTPUT_DIR))

    # Duration assumed when the model gives no end time
    DEFAULT_EVENT_MINUTES: int = int(os.getenv("DEFAULT_EVENT_MINUTES", "60"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_TO_FILE: bool = _env_bool("LOG_TO_FILE", True)
    LOG_DIR: str = os.getenv("LOG_DIR", str(LOG_DIR))

    @classmethod
    def get_timezone(cls):
        """Get the configured pytz timezone (falls back to UTC if unknown)."""
        try:
            return pytz.timezone(cls.TIMEZONE)
        except pytz.UnknownTimeZoneError:
            return pytz.utc

    @classmethod
    def encoder_options(cls) -> EncoderOptions:
        """Build ICS encoder options from configuration."""
        return EncoderOptions(
            product_name=cls.ICS_PRODUCT_NAME,
            uid_namespace=cls.ICS_UID_NAMESPACE,
            uid_strategy=cls.ICS_UID_STRATEGY,
            escape_text=cls.ICS_ESCAPE_TEXT,
            end_policy=cls.ICS_END_POLICY,
            on_invalid=cls.ICS_ON_INVALID,
            fold_lines=cls.ICS_FOLD_LINES,
        )

    @classmethod
    def validate(cls, require_telegram: bool = True) -> list[str]:
        """Validate required configuration. Returns list of missing keys."""
        missing = []

        if require_telegram and not cls.TELEGRAM_TOKEN:
            missing.append("TELEGRAM_TOKEN")

        if not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")

        return missing


# Convenience access
config = Config()
