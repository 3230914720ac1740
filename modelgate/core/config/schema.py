"""Declared environment variables of the gateway.

Each setting is an EnvVarSpec on ConfigSchema, which is the one place that
knows a variable's name, type, default and allowed values. The same
declarations drive loading, ``modelgate config validate`` and
``modelgate config docs``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from modelgate.core.logging import VALID_LEVELS


@dataclass(frozen=True)
class EnvVarSpec:
    """One environment variable.

    Attributes:
        name: Variable name as read from the environment
        default: Value used when the variable is unset
        type_hint: Target type (str, int, float or bool)
        description: One-line explanation, shown in docs and errors
        validator: Predicate the coerced value must satisfy
        coerce: Replacement for the default str -> type_hint conversion
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


def _positive(value: float) -> bool:
    return value > 0


class ConfigSchema:
    """Every environment variable modelgate reads."""

    # Server

    HOST = EnvVarSpec("HOST", "0.0.0.0", str, "Interface the HTTP server binds to")
    PORT = EnvVarSpec(
        "PORT", 3456, int, "HTTP server port (1-65535)", validator=lambda p: 0 < p < 65536
    )
    LOG_LEVEL = EnvVarSpec(
        "LOG_LEVEL",
        "INFO",
        str,
        f"Root log level, one of {', '.join(VALID_LEVELS)}",
        validator=lambda level: bool(level.split()) and level.split()[0].upper() in VALID_LEVELS,
    )

    # Providers

    MODELGATE_CONFIG = EnvVarSpec(
        "MODELGATE_CONFIG",
        "~/.modelgate/config.json",
        str,
        "JSON file with the Providers array",
    )
    MAX_KEY_ATTEMPTS = EnvVarSpec(
        "MAX_KEY_ATTEMPTS",
        0,
        int,
        "Upstream attempts per request, 0 meaning one per configured key",
        validator=lambda n: n >= 0,
    )

    # Client authentication

    PROXY_API_KEY = EnvVarSpec(
        "PROXY_API_KEY", None, str, "Key clients must send; unset leaves the gateway open"
    )

    # Upstream timeouts

    REQUEST_TIMEOUT = EnvVarSpec(
        "REQUEST_TIMEOUT", 90.0, float, "Upstream read timeout in seconds", validator=_positive
    )
    STREAMING_CONNECT_TIMEOUT_SECONDS = EnvVarSpec(
        "STREAMING_CONNECT_TIMEOUT_SECONDS",
        30.0,
        float,
        "Upstream connect timeout in seconds",
        validator=_positive,
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Map attribute name to spec, in alphabetical order."""
        specs = {attr: getattr(cls, attr) for attr in sorted(vars(cls))}
        return {attr: value for attr, value in specs.items() if isinstance(value, EnvVarSpec)}

    @classmethod
    def generate_markdown_docs(cls) -> str:
        """Render the variables as a Markdown reference table."""
        lines = [
            "# modelgate environment variables",
            "",
            "| Variable | Type | Default | Description |",
            "|---|---|---|---|",
        ]
        for spec in cls.all_specs().values():
            default = "unset" if spec.default is None else f"`{spec.default}`"
            lines.append(
                f"| `{spec.name}` | {spec.type_hint.__name__} | {default} | {spec.description} |"
            )
        return "\n".join(lines) + "\n"
