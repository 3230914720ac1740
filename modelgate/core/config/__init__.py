"""Configuration package.

Re-exports the module-level ``config`` singleton so callers can write
``from modelgate.core.config import config``.
"""

from modelgate.core.config.config import Config, config
from modelgate.core.config.schema import ConfigSchema, EnvVarSpec
from modelgate.core.config.validation import ConfigError, load_env_var, validate_all

__all__ = [
    "Config",
    "config",
    "ConfigSchema",
    "EnvVarSpec",
    "ConfigError",
    "load_env_var",
    "validate_all",
]
