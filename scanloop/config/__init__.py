"""
==============================================================================
Configuration Package
==============================================================================

Centralized configuration management using Pydantic Settings.

Usage:
------
    from scanloop.config import get_settings, ScannerConfig

    settings = get_settings()
    config = settings.scanner_config()

==============================================================================
"""

from .settings import (
    FacingMode,
    FeedbackConfig,
    ScannerConfig,
    Settings,
    get_settings,
)

__all__ = [
    "FacingMode",
    "FeedbackConfig",
    "ScannerConfig",
    "Settings",
    "get_settings",
]
