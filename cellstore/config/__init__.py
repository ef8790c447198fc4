"""Configuration for Cell Store."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
