"""Transformer chains and their resolution from configuration.

A provider's transformer configuration is a provider-wide chain (``use``) plus
optional per-model override chains. Resolution turns each TransformerSpec into a
live Transformer once, at registration time, using a TransformerRegistry.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from modelgate.transformers.base import (
    Named,
    NamedWithConfig,
    RequestConfig,
    Transformer,
    TransformerSpec,
    UnifiedResponse,
    WireRequest,
)
from modelgate.transformers.registry import TransformerRegistry

if TYPE_CHECKING:
    from modelgate.core.provider.models import Provider

logger = logging.getLogger(__name__)


class TransformerChain:
    """Ordered sequence of resolved transformers.

    Request hooks run in chain order, each step receiving the body produced by
    the previous one. ``transform_request_out`` and response hooks run in reverse
    order, so the step closest to the wire sees the raw data first.
    """

    def __init__(self, transformers: list[Transformer] | None = None) -> None:
        self.transformers: list[Transformer] = list(transformers or [])
        self.logger = logging.getLogger(f"{__name__}.TransformerChain")

    def __len__(self) -> int:
        return len(self.transformers)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.transformers)

    @property
    def names(self) -> list[str]:
        return [t.name for t in self.transformers]

    def transform_request_in(self, request: dict[str, Any], provider: Provider) -> WireRequest:
        """Run every request hook and return the final wire request."""
        body = copy.deepcopy(request)
        config = RequestConfig()
        for i, transformer in enumerate(self.transformers):
            self.logger.debug(
                f"Running request transformer [{i + 1}/{len(self.transformers)}]: {transformer.name}"
            )
            wire = transformer.transform_request_in(body, provider)
            body = wire.body
            config = config.merged_with(wire.config)
        return WireRequest(body=body, config=config)

    def transform_request_out(self, request: dict[str, Any]) -> dict[str, Any]:
        """Convert a provider-native request back to the unified shape."""
        result = copy.deepcopy(request)
        for transformer in reversed(self.transformers):
            result = transformer.transform_request_out(result)
        return result

    def transform_response_out(self, response: UnifiedResponse) -> UnifiedResponse:
        """Run every response hook, nearest-to-the-wire first."""
        for transformer in reversed(self.transformers):
            try:
                response = transformer.transform_response_out(response)
            except Exception as e:
                self.logger.error(f"Transformer {transformer.name} failed: {e}", exc_info=True)
                raise
        return response


@dataclasses.dataclass(frozen=True)
class ProviderTransformerSpec:
    """Unresolved transformer configuration of one provider."""

    use: tuple[TransformerSpec, ...] = ()
    per_model: dict[str, tuple[TransformerSpec, ...]] = dataclasses.field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.use and not self.per_model


@dataclasses.dataclass(frozen=True)
class ProviderTransformers:
    """Resolved chains of one provider."""

    use: TransformerChain = dataclasses.field(default_factory=TransformerChain)
    per_model: dict[str, TransformerChain] = dataclasses.field(default_factory=dict)

    def for_model(self, model: str) -> TransformerChain:
        """Return the chain serving ``model``; a model override beats the provider chain."""
        return self.per_model.get(model, self.use)


def parse_transformer_entry(entry: Any) -> TransformerSpec | None:
    """Parse one configured chain entry.

    Accepts ``"name"`` or ``["name", {config}]``. Returns None for anything else.
    """
    if isinstance(entry, str) and entry:
        return Named(entry)
    if isinstance(entry, (list, tuple)) and entry and isinstance(entry[0], str):
        if len(entry) == 1:
            return Named(entry[0])
        config = entry[1]
        if len(entry) == 2 and (config is None or isinstance(config, dict)):
            return NamedWithConfig(entry[0], dict(config or {}))
    return None


def _parse_chain(entries: Any, provider_name: str, scope: str) -> tuple[TransformerSpec, ...]:
    if not isinstance(entries, list):
        logger.warning(f"Provider '{provider_name}': transformer chain for {scope} is not a list")
        return ()
    specs: list[TransformerSpec] = []
    for entry in entries:
        spec = parse_transformer_entry(entry)
        if spec is None:
            logger.warning(
                f"Provider '{provider_name}': skipping malformed transformer entry "
                f"{entry!r} in {scope}"
            )
            continue
        specs.append(spec)
    return tuple(specs)


def parse_transformer_config(raw: Any, provider_name: str) -> ProviderTransformerSpec:
    """Parse a provider's ``transformer`` map.

    The ``use`` key holds the provider-wide chain. Every other key names a model;
    its value is a chain list or a ``{"use": [...]}`` map.
    """
    if not raw:
        return ProviderTransformerSpec()
    if not isinstance(raw, dict):
        logger.warning(f"Provider '{provider_name}': transformer config must be a map")
        return ProviderTransformerSpec()

    use: tuple[TransformerSpec, ...] = ()
    per_model: dict[str, tuple[TransformerSpec, ...]] = {}
    for key, value in raw.items():
        if key == "use":
            use = _parse_chain(value, provider_name, "use")
            continue
        if isinstance(value, dict):
            value = value.get("use")
        per_model[key] = _parse_chain(value, provider_name, f"model '{key}'")
    return ProviderTransformerSpec(use=use, per_model=per_model)


def resolve_spec(
    spec: TransformerSpec, registry: TransformerRegistry, provider_name: str
) -> Transformer | None:
    """Turn one spec into a live transformer, or None if it cannot be resolved."""
    factory = registry.get_transformer(spec.name)
    if factory is None:
        logger.warning(f"Provider '{provider_name}': unknown transformer '{spec.name}', dropping it")
        return None

    if isinstance(factory, type):
        if isinstance(spec, NamedWithConfig):
            return factory(spec.config)
        return factory()

    if isinstance(spec, NamedWithConfig) and spec.config:
        logger.warning(
            f"Provider '{provider_name}': transformer '{spec.name}' is a shared instance, "
            "ignoring its configuration"
        )
    return factory


def resolve_chain(
    specs: tuple[TransformerSpec, ...] | list[TransformerSpec],
    registry: TransformerRegistry,
    provider_name: str,
) -> TransformerChain:
    """Resolve a sequence of specs, dropping the ones that cannot be resolved."""
    transformers = []
    for spec in specs:
        transformer = resolve_spec(spec, registry, provider_name)
        if transformer is not None:
            transformers.append(transformer)
    return TransformerChain(transformers)


def resolve_provider_transformers(
    spec: ProviderTransformerSpec, registry: TransformerRegistry, provider_name: str
) -> ProviderTransformers:
    """Resolve the provider-wide chain and every per-model override."""
    return ProviderTransformers(
        use=resolve_chain(spec.use, registry, provider_name),
        per_model={
            model: resolve_chain(specs, registry, provider_name)
            for model, specs in spec.per_model.items()
        },
    )
