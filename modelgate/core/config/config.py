"""Configuration singleton for modelgate.

Settings are read from environment variables through ConfigSchema at
construction time. The provider registry is built lazily on first access from
the providers file named by MODELGATE_CONFIG.
"""

import hmac
import logging
import threading
from typing import TYPE_CHECKING

from modelgate.core.config.schema import ConfigSchema
from modelgate.core.config.validation import load_env_var

if TYPE_CHECKING:
    from modelgate.core.provider.provider_config_loader import ProviderLoadResult
    from modelgate.core.provider.provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)


class Config:
    """Configuration with direct property access to all settings.

    The provider registry is initialized lazily with double-checked locking so
    only one instance is created under concurrent access.
    """

    def __init__(self) -> None:
        self._host: str = load_env_var(ConfigSchema.HOST)
        self._port: int = load_env_var(ConfigSchema.PORT)
        self._log_level: str = load_env_var(ConfigSchema.LOG_LEVEL)
        self._providers_path: str = load_env_var(ConfigSchema.MODELGATE_CONFIG)
        self._max_key_attempts: int = load_env_var(ConfigSchema.MAX_KEY_ATTEMPTS)
        self._proxy_api_key: str | None = load_env_var(ConfigSchema.PROXY_API_KEY)
        self._request_timeout: float = load_env_var(ConfigSchema.REQUEST_TIMEOUT)
        self._connect_timeout: float = load_env_var(ConfigSchema.STREAMING_CONNECT_TIMEOUT_SECONDS)

        self._provider_registry: "ProviderRegistry | None" = None
        self._load_results: "list[ProviderLoadResult]" = []
        self._provider_registry_lock = threading.Lock()

    # Server settings
    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def log_level(self) -> str:
        return self._log_level

    # Provider settings
    @property
    def providers_path(self) -> str:
        return self._providers_path

    @property
    def max_key_attempts(self) -> int:
        return self._max_key_attempts

    # Security settings
    @property
    def proxy_api_key(self) -> str | None:
        return self._proxy_api_key

    def validate_client_api_key(self, client_api_key: str | None) -> bool:
        """Check a client key against PROXY_API_KEY (always valid when unset)."""
        if not self._proxy_api_key:
            return True
        if not client_api_key:
            return False
        return hmac.compare_digest(client_api_key, self._proxy_api_key)

    # Timeout settings
    @property
    def request_timeout(self) -> float:
        return self._request_timeout

    @property
    def connect_timeout(self) -> float:
        return self._connect_timeout

    # Lazy provider registry
    @property
    def provider_registry(self) -> "ProviderRegistry":
        if self._provider_registry is None:
            with self._provider_registry_lock:
                # Double-check: another thread may have initialized while we waited
                if self._provider_registry is None:
                    from modelgate.core.provider.provider_config_loader import ProviderConfigLoader
                    from modelgate.core.provider.provider_registry import ProviderRegistry

                    loader = ProviderConfigLoader(self._providers_path)
                    registry = ProviderRegistry()
                    self._load_results = registry.load_providers(loader.load_records(), loader)
                    logger.debug(
                        f"Provider registry initialized from {loader.config_path} "
                        f"({len(registry.get_providers())} provider(s))"
                    )
                    self._provider_registry = registry
        return self._provider_registry

    @property
    def provider_load_results(self) -> "list[ProviderLoadResult]":
        _ = self.provider_registry
        return list(self._load_results)


# Module-level singleton
config = Config()
