"""Configuration utilities."""

from .config_loader import DEFAULT_CONFIG, build_config, load_config_file
from .config_validator import (
    BenchmarkConfigValidator,
    ConfigurationError,
    validate_and_fix_config,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "build_config",
    "load_config_file",
    "BenchmarkConfigValidator",
    "ConfigurationError",
    "validate_and_fix_config",
    "validate_config",
]
