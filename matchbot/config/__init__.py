"""
Configuration package.

This package contains configuration loading and validation.
"""

from matchbot.config.config import Settings
from matchbot.config.config_validator import ConfigValidator, validate_and_log

__all__ = [
    "Settings",
    "ConfigValidator",
    "validate_and_log",
]
