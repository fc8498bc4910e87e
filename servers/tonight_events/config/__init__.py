"""Pipeline configuration loading and validation."""

from .settings import (
    ConfigurationError,
    get_default_config,
    load_config,
    require_valid_config,
    resolve_path,
    validate_config,
)

__all__ = [
    "ConfigurationError",
    "get_default_config",
    "load_config",
    "require_valid_config",
    "resolve_path",
    "validate_config",
]
