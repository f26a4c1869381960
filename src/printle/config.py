"""
Configuration for PrintLe.

Values come from the process environment; a `.env` file in the working
directory is loaded first when present.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


class Config:
    """Default configuration for the print server."""

    HOST = os.environ.get("PRINTLE_HOST", "0.0.0.0")
    PORT = _env_int("PRINTLE_PORT", 3001)

    # Upper bound for one Print-Job exchange (connect and read, seconds).
    # A slow or unreachable printer must not hold a worker forever.
    IPP_TIMEOUT = _env_float("PRINTLE_IPP_TIMEOUT", 30.0)
    IPP_VERIFY_TLS = os.environ.get("PRINTLE_IPP_VERIFY_TLS", "1") == "1"
    REQUESTING_USER = os.environ.get("PRINTLE_REQUESTING_USER", "PrintLe-User")

    # Where uploads are staged while a job is transformed; None = system temp.
    STAGING_DIR = os.environ.get("PRINTLE_STAGING_DIR") or None

    MAX_CONTENT_LENGTH = _env_int("PRINTLE_MAX_UPLOAD_MB", 50) * 1024 * 1024

    LOG_LEVEL = os.environ.get("PRINTLE_LOG_LEVEL", "INFO").upper()
    LOG_DIR = os.environ.get("PRINTLE_LOG_DIR") or None

    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    IPP_TIMEOUT = 2.0
    LOG_DIR = None
