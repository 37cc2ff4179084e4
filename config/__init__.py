"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    SKIP_ALL_SENTINEL: Skip-list value meaning "every code"
"""

from config.settings import settings, get_settings, Settings, SKIP_ALL_SENTINEL

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "SKIP_ALL_SENTINEL",
]
