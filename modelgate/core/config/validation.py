"""Environment variable coercion and validation.

``load_env_var`` turns one raw environment value into the typed value its
EnvVarSpec describes; ``validate_all`` checks every declared variable so the
CLI can report all problems in one go.
"""

import os
from collections.abc import Callable
from typing import Any

from modelgate.core.config.schema import ConfigSchema, EnvVarSpec


class ConfigError(Exception):
    """An environment variable holds a value the gateway cannot use.

    Attributes:
        env_var: Name of the offending variable
        value: Raw value as found in the environment
        message: What is wrong with it
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


_COERCERS: dict[type, Callable[[str], Any]] = {
    bool: _to_bool,
    int: int,
    float: float,
    str: str,
}


def load_env_var(spec: EnvVarSpec) -> Any:
    """Read ``spec.name`` from the environment.

    Returns:
        The default when unset, otherwise the coerced and validated value.

    Raises:
        ConfigError: If the value cannot be coerced or fails the validator.
    """
    raw = os.environ.get(spec.name)
    if raw is None:
        return spec.default

    coerce = spec.coerce or _COERCERS.get(spec.type_hint, str)
    try:
        value = coerce(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(spec.name, raw, f"Cannot convert to {spec.type_hint.__name__}: {e}") from e

    if spec.validator is None:
        return value
    try:
        accepted = spec.validator(value)
    except (TypeError, IndexError) as e:
        raise ConfigError(spec.name, raw, f"Validator raised {type(e).__name__}: {e}") from e
    if not accepted:
        raise ConfigError(spec.name, raw, f"Out of range or not allowed ({spec.description})")
    return value


def validate_all() -> list[ConfigError]:
    """Load every declared variable and collect the failures."""
    errors: list[ConfigError] = []
    for spec in ConfigSchema.all_specs().values():
        try:
            load_env_var(spec)
        except ConfigError as e:
            errors.append(e)
    return errors
