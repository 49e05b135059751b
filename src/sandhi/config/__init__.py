"""Configuration management for sandhi."""

from sandhi.config.exceptions import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from sandhi.config.models import SandhiConfig

__all__ = [
    "ConfigurationError",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "SandhiConfig",
]
