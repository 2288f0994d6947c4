"""Configuration module for svcps.

This module provides:
- Pydantic models for configuration validation
- YAML config file loading and discovery
- Default configuration values
- Environment variable expansion
- Clear error messages for config issues
"""

from svcps.config.defaults import DEFAULT_CONFIG
from svcps.config.loader import (
    ColumnsConfig,
    Config,
    ConfigError,
    ConfigSyntaxError,
    ConfigValidationError,
    LoggingConfig,
    SystemConfig,
    get_config_path,
    load_config,
)

__all__ = [
    "Config",
    "ColumnsConfig",
    "ConfigError",
    "ConfigSyntaxError",
    "ConfigValidationError",
    "LoggingConfig",
    "SystemConfig",
    "DEFAULT_CONFIG",
    "get_config_path",
    "load_config",
]
