"""Provider transformers.

Transformers adapt the unified chat-completion shape to a provider's wire
format and back. A provider's transformers are resolved once into chains:

- TransformerRegistry: name -> transformer class or instance
- TransformerChain: ordered transformers applied to requests and responses
- GeminiTransformer: adapter for the Gemini REST API
"""

from modelgate.transformers.base import (
    Named,
    NamedWithConfig,
    RequestConfig,
    Transformer,
    TransformerSpec,
    UnifiedResponse,
    WireRequest,
)
from modelgate.transformers.chain import (
    ProviderTransformers,
    ProviderTransformerSpec,
    TransformerChain,
    parse_transformer_config,
    resolve_provider_transformers,
)
from modelgate.transformers.gemini import GeminiTransformer
from modelgate.transformers.registry import TransformerRegistry, create_default_registry

__all__ = [
    "Named",
    "NamedWithConfig",
    "TransformerSpec",
    "RequestConfig",
    "WireRequest",
    "UnifiedResponse",
    "Transformer",
    "TransformerChain",
    "ProviderTransformerSpec",
    "ProviderTransformers",
    "parse_transformer_config",
    "resolve_provider_transformers",
    "TransformerRegistry",
    "create_default_registry",
    "GeminiTransformer",
]
