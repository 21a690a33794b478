"""Configuration module"""
from .logging import configure_logging
from .settings import Settings, settings

__all__ = [
    # Settings
    "Settings",
    "settings",
    # Logging
    "configure_logging",
]
