"""
Cell Store Configuration Settings

This module contains all configuration constants for the cell server.
Values can be overridden through environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("CELLSTORE_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("CELLSTORE_PORT", "8080"))

    # Logging settings
    DEBUG: bool = os.environ.get("CELLSTORE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("CELLSTORE_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
