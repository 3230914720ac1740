"""Provider configuration loading from the JSON providers file."""

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from modelgate.core.errors import InvalidProviderConfig
from modelgate.core.provider.key_selector import KeyStrategy
from modelgate.core.provider.models import ProviderSpec
from modelgate.transformers.chain import parse_transformer_config


@dataclass
class ProviderLoadResult:
    """Result of loading a provider configuration."""

    name: str
    status: str  # "success", "error"
    message: str | None = None
    api_key_hash: str | None = None
    base_url: str | None = None
    key_count: int = 0
    strategy: str | None = None


class ProviderConfigLoader:
    """Loads provider records from a JSON config file.

    Responsibilities:
    - Read the ``Providers`` (or ``providers``) array from the config file
    - Expand ``$VAR`` / ``${VAR}`` references in keys and base URLs
    - Turn raw records into validated ProviderSpecs

    Expected record shape::

        {
          "name": "gemini",
          "api_base_url": "https://generativelanguage.googleapis.com/v1beta/models/",
          "api_key": ["$GEMINI_KEY_1", "$GEMINI_KEY_2"],
          "api_key_strategy": "failover",
          "models": ["gemini-2.5-pro"],
          "transformer": {"use": ["gemini"]}
        }
    """

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._config_path = Path(config_path).expanduser() if config_path else None
        self._logger = logging.getLogger(__name__)

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def load_records(self) -> list[dict[str, Any]]:
        """Read raw provider records from the config file.

        Returns:
            The provider records, or an empty list when no file is configured
            or the file does not exist.

        Raises:
            ValueError: If the file is not valid JSON or has the wrong shape.
        """
        if self._config_path is None:
            return []
        if not self._config_path.exists():
            self._logger.info(f"Providers config not found at {self._config_path}")
            return []

        try:
            data = json.loads(self._config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self._config_path}: {e}") from e

        if isinstance(data, list):
            records = data
        elif isinstance(data, dict):
            records = data.get("Providers", data.get("providers", []))
        else:
            records = None
        if not isinstance(records, list):
            raise ValueError(f"{self._config_path}: 'Providers' must be an array")
        return records

    @staticmethod
    def _expand(value: Any) -> Any:
        if isinstance(value, str):
            return os.path.expandvars(value).strip()
        return value

    def parse_record(self, record: Any) -> ProviderSpec:
        """Validate a raw provider record and convert it into a ProviderSpec.

        Raises:
            InvalidProviderConfig: If a required field is missing or malformed.
        """
        if not isinstance(record, dict):
            raise InvalidProviderConfig(None, "provider entry must be an object")

        name = record.get("name")
        if not name or not isinstance(name, str):
            raise InvalidProviderConfig(name, "name is required")

        base_url = self._expand(record.get("api_base_url"))
        if not base_url or not isinstance(base_url, str):
            raise InvalidProviderConfig(name, "api_base_url is required")

        raw_keys = record.get("api_key")
        if not isinstance(raw_keys, list) or not raw_keys:
            raise InvalidProviderConfig(name, "api_key must be a non-empty array")
        api_keys = [self._expand(k) for k in raw_keys]
        if not all(isinstance(k, str) and k for k in api_keys):
            raise InvalidProviderConfig(name, "api_key entries must be non-empty strings")

        try:
            strategy = KeyStrategy.parse(record.get("api_key_strategy"))
        except ValueError as e:
            raise InvalidProviderConfig(name, str(e)) from e

        models = record.get("models") or []
        if not isinstance(models, list) or not all(isinstance(m, str) and m for m in models):
            raise InvalidProviderConfig(name, "models must be an array of strings")

        return ProviderSpec(
            name=name,
            base_url=base_url,
            api_keys=api_keys,
            api_key_strategy=strategy,
            models=list(models),
            transformer=parse_transformer_config(record.get("transformer"), name),
        )

    @staticmethod
    def get_api_key_hash(api_key: str) -> str:
        """Return first 8 chars of sha256 hash."""
        return hashlib.sha256(api_key.encode()).hexdigest()[:8]
