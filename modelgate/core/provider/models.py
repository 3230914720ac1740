"""Provider records, registration/update inputs and routing results."""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone

from modelgate.core.provider.key_selector import KeyStrategy
from modelgate.transformers.chain import ProviderTransformers, ProviderTransformerSpec


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProviderSpec:
    """Input to ``ProviderRegistry.register_provider``."""

    name: str
    base_url: str
    api_keys: list[str]
    api_key_strategy: KeyStrategy | str = KeyStrategy.ROUND_ROBIN
    models: list[str] = field(default_factory=list)
    transformer: ProviderTransformerSpec = field(default_factory=ProviderTransformerSpec)


@dataclass
class ProviderUpdate:
    """Partial update for ``ProviderRegistry.update_provider``.

    Every field left as None is "not supplied" and keeps its current value.
    Supplied fields replace the current value wholesale; lists are not merged.

    - ``models`` also regenerates the provider's routes.
    - ``api_keys`` / ``api_key_strategy`` rebuild the key selector, discarding
      its rotation state.
    - ``transformer`` re-resolves the provider's chains.
    """

    base_url: str | None = None
    api_keys: list[str] | None = None
    api_key_strategy: KeyStrategy | str | None = None
    models: list[str] | None = None
    transformer: ProviderTransformerSpec | None = None

    def supplied(self) -> set[str]:
        """Names of the fields carried by this update."""
        return {f.name for f in dataclasses.fields(self) if getattr(self, f.name) is not None}


@dataclass(eq=False)
class Provider:
    """A registered backend provider.

    Owned by the registry and edited in place, so a RouteResolution that
    references it sees later credential or base URL changes.
    """

    name: str
    base_url: str
    api_keys: list[str]
    api_key_strategy: KeyStrategy
    models: list[str]
    transformers: ProviderTransformers = field(default_factory=ProviderTransformers)
    transformer_config: ProviderTransformerSpec = field(default_factory=ProviderTransformerSpec)
    enabled: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime | None = None

    def with_selected_key(self, api_key: str) -> "Provider":
        """Return a per-call copy carrying only the key chosen for this call."""
        return dataclasses.replace(self, api_keys=[api_key])


@dataclass(frozen=True, slots=True)
class ModelRoute:
    """A routing table entry: which provider serves which model."""

    provider_name: str
    model: str

    @property
    def qualified_name(self) -> str:
        return qualified_model_name(self.provider_name, self.model)


@dataclass(frozen=True, slots=True)
class RouteResolution:
    """Result of resolving a requested model name."""

    provider: Provider
    original_model: str
    target_model: str


def qualified_model_name(provider_name: str, model: str) -> str:
    """Build the ``provider,model`` name that always targets one provider."""
    return f"{provider_name},{model}"
