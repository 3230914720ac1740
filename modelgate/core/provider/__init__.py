"""Provider management package.

Focused components for routing requests to providers:

- KeySelector: Per-provider API key rotation (round-robin, random, failover)
- ModelRouter: Bare and qualified model name routing table
- ProviderConfigLoader: Loads provider records from the JSON config file
- ProviderRegistry: Owns providers, key selectors and routes
"""

from modelgate.core.provider.key_selector import KeySelector, KeyStrategy, SelectedKey
from modelgate.core.provider.model_router import ModelRouter
from modelgate.core.provider.models import (
    ModelRoute,
    Provider,
    ProviderSpec,
    ProviderUpdate,
    RouteResolution,
)
from modelgate.core.provider.provider_config_loader import ProviderConfigLoader, ProviderLoadResult
from modelgate.core.provider.provider_registry import ProviderRegistry

__all__ = [
    "KeySelector",
    "KeyStrategy",
    "SelectedKey",
    "ModelRouter",
    "ModelRoute",
    "Provider",
    "ProviderSpec",
    "ProviderUpdate",
    "RouteResolution",
    "ProviderConfigLoader",
    "ProviderLoadResult",
    "ProviderRegistry",
]
