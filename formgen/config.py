import os

from dotenv import load_dotenv

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def strict_fields_enabled() -> bool:
    """Whether one malformed field should reject the whole schema."""
    return os.getenv("FORMGEN_STRICT_FIELDS", "false").strip().lower() in _TRUTHY


def log_level() -> str:
    return os.getenv("FORMGEN_LOG_LEVEL", "INFO").strip().upper() or "INFO"
