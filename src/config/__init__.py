"""
Configuration module for the matching engine.

This module provides centralized configuration management using pydantic-settings.
All environment variables and configuration values should be accessed through this module.

Usage:
    from config import get_settings

    settings = get_settings()
    threshold = settings.reciprocal_threshold
    is_dev = settings.is_development
"""

from config.settings import Settings, get_settings, get_settings_for_testing
from config.constants import KeySpace, DEFAULT_KEY_SPACE

__all__ = [
    "Settings",
    "get_settings",
    "get_settings_for_testing",
    "KeySpace",
    "DEFAULT_KEY_SPACE",
]
