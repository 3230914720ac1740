"""Provider registry: providers, their key selectors and the model routes."""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from modelgate.core.errors import InvalidProviderConfig, UnknownProvider
from modelgate.core.provider.key_selector import KeySelector, KeyStrategy, SelectedKey
from modelgate.core.provider.model_router import ModelRouter
from modelgate.core.provider.models import (
    ModelRoute,
    Provider,
    ProviderSpec,
    ProviderUpdate,
    RouteResolution,
    qualified_model_name,
)
from modelgate.core.provider.provider_config_loader import ProviderConfigLoader, ProviderLoadResult
from modelgate.transformers.chain import resolve_provider_transformers
from modelgate.transformers.registry import TransformerRegistry, create_default_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _RegistryState:
    """Immutable snapshot of the registry tables."""

    providers: dict[str, Provider] = field(default_factory=dict)
    selectors: dict[str, KeySelector] = field(default_factory=dict)
    router: ModelRouter = field(default_factory=ModelRouter)


class ProviderRegistry:
    """Central registry of configured providers.

    Responsibilities:
    - Register, update, toggle and delete providers
    - Own one KeySelector per provider
    - Keep the model routing table in step with the providers' model lists
    - Resolve model names and list available models

    Mutations are serialized by a writer lock and publish a fresh snapshot of the
    tables. Route resolution, listing and key selection read the current
    snapshot without locking.
    """

    def __init__(self, transformer_registry: TransformerRegistry | None = None) -> None:
        self._transformers = transformer_registry or create_default_registry()
        self._state = _RegistryState()
        self._write_lock = threading.RLock()

    # === Registration ===

    @staticmethod
    def _validate(spec: ProviderSpec) -> KeyStrategy:
        if not spec.name or not isinstance(spec.name, str):
            raise InvalidProviderConfig(spec.name, "name is required")
        if not spec.base_url or not isinstance(spec.base_url, str):
            raise InvalidProviderConfig(spec.name, "base URL is required")
        ProviderRegistry._validate_keys(spec.name, spec.api_keys)
        try:
            return KeyStrategy.parse(spec.api_key_strategy)
        except ValueError as e:
            raise InvalidProviderConfig(spec.name, str(e)) from e

    @staticmethod
    def _validate_keys(name: str, api_keys: Any) -> None:
        if not isinstance(api_keys, list) or not api_keys:
            raise InvalidProviderConfig(name, "api_keys must be a non-empty list")
        if not all(isinstance(k, str) and k for k in api_keys):
            raise InvalidProviderConfig(name, "api_keys entries must be non-empty strings")

    def register_provider(self, spec: ProviderSpec) -> Provider:
        """Register a provider, replacing any provider with the same name.

        Raises:
            InvalidProviderConfig: If the name, base URL, keys or strategy are invalid.
        """
        strategy = self._validate(spec)
        provider = Provider(
            name=spec.name,
            base_url=spec.base_url,
            api_keys=list(spec.api_keys),
            api_key_strategy=strategy,
            models=list(dict.fromkeys(spec.models)),
            transformers=resolve_provider_transformers(
                spec.transformer, self._transformers, spec.name
            ),
            transformer_config=spec.transformer,
        )

        with self._write_lock:
            state = self._state
            previous = state.providers.get(provider.name)
            providers = {**state.providers, provider.name: provider}
            selectors = {
                **state.selectors,
                provider.name: KeySelector(provider.api_keys, strategy, provider.name),
            }
            router = state.router.copy()
            router.replace_models(
                provider.name,
                previous.models if previous else [],
                provider.models,
            )
            self._state = _RegistryState(providers, selectors, router)

        if previous is not None:
            logger.info(f"Provider '{provider.name}' re-registered, previous definition replaced")
        logger.debug(
            f"Registered provider '{provider.name}' with {len(provider.models)} model(s), "
            f"chain: {provider.transformers.use.names}"
        )
        return provider

    def load_providers(
        self, records: Iterable[Any], loader: ProviderConfigLoader | None = None
    ) -> list[ProviderLoadResult]:
        """Register providers from raw config records.

        A malformed record is logged and skipped; it never stops the others.
        """
        loader = loader or ProviderConfigLoader()
        results: list[ProviderLoadResult] = []
        for record in records:
            name = record.get("name") if isinstance(record, dict) else None
            try:
                provider = self.register_provider(loader.parse_record(record))
            except InvalidProviderConfig as e:
                logger.warning(f"Skipping provider '{name}': {e.reason}")
                results.append(ProviderLoadResult(name=str(name), status="error", message=e.reason))
                continue

            logger.info(
                f"{provider.name} provider registered with {len(provider.api_keys)} API key(s), "
                f"strategy: {provider.api_key_strategy.value}"
            )
            results.append(
                ProviderLoadResult(
                    name=provider.name,
                    status="success",
                    api_key_hash=loader.get_api_key_hash(provider.api_keys[0]),
                    base_url=provider.base_url,
                    key_count=len(provider.api_keys),
                    strategy=provider.api_key_strategy.value,
                )
            )
        return results

    # === Mutation ===

    def update_provider(self, name: str, update: ProviderUpdate) -> Provider | None:
        """Merge the supplied fields of ``update`` into a registered provider.

        Returns:
            The updated provider, or None if ``name`` is not registered.

        Raises:
            InvalidProviderConfig: If a supplied field is invalid.
        """
        supplied = update.supplied()

        with self._write_lock:
            state = self._state
            provider = state.providers.get(name)
            if provider is None:
                return None

            base_url = provider.base_url
            if "base_url" in supplied:
                if not update.base_url:
                    raise InvalidProviderConfig(name, "base URL is required")
                base_url = update.base_url

            api_keys = provider.api_keys
            if "api_keys" in supplied:
                self._validate_keys(name, update.api_keys)
                api_keys = list(update.api_keys or [])

            strategy = provider.api_key_strategy
            if "api_key_strategy" in supplied:
                try:
                    strategy = KeyStrategy.parse(update.api_key_strategy)
                except ValueError as e:
                    raise InvalidProviderConfig(name, str(e)) from e

            transformers = provider.transformers
            transformer_config = provider.transformer_config
            if update.transformer is not None:
                transformer_config = update.transformer
                transformers = resolve_provider_transformers(
                    transformer_config, self._transformers, name
                )

            old_models = provider.models
            models = list(dict.fromkeys(update.models)) if update.models is not None else old_models

            provider.base_url = base_url
            provider.api_keys = api_keys
            provider.api_key_strategy = strategy
            provider.transformers = transformers
            provider.transformer_config = transformer_config
            provider.models = models
            provider.updated_at = datetime.now(timezone.utc)

            selectors = state.selectors
            if supplied & {"api_keys", "api_key_strategy"}:
                selectors = {**selectors, name: KeySelector(api_keys, strategy, name)}

            router = state.router
            if "models" in supplied:
                router = router.copy()
                router.replace_models(name, old_models, models)

            self._state = _RegistryState(dict(state.providers), selectors, router)

        logger.info(f"Provider '{name}' updated: {', '.join(sorted(supplied)) or 'no fields'}")
        return provider

    def delete_provider(self, name: str) -> bool:
        """Remove a provider, its key selector and every route it owns."""
        with self._write_lock:
            state = self._state
            provider = state.providers.get(name)
            if provider is None:
                return False

            providers = {k: v for k, v in state.providers.items() if k != name}
            selectors = {k: v for k, v in state.selectors.items() if k != name}
            router = state.router.copy()
            router.remove_models(name, provider.models)
            self._state = _RegistryState(providers, selectors, router)

        logger.info(f"Provider '{name}' deleted")
        return True

    def toggle_provider(self, name: str, enabled: bool) -> bool:
        """Enable or disable a provider without deleting it.

        Disabled providers keep their routes and claims but are skipped by
        route resolution and model listing.

        Returns:
            False if the provider is not registered.
        """
        with self._write_lock:
            provider = self._state.providers.get(name)
            if provider is None:
                return False
            provider.enabled = bool(enabled)
            provider.updated_at = datetime.now(timezone.utc)
        logger.info(f"Provider '{name}' {'enabled' if enabled else 'disabled'}")
        return True

    # === Queries ===

    def get_providers(self) -> list[Provider]:
        """Return all providers in registration order."""
        return list(self._state.providers.values())

    def get_provider(self, name: str) -> Provider | None:
        return self._state.providers.get(name)

    def _selector(self, provider_name: str) -> KeySelector:
        selector = self._state.selectors.get(provider_name)
        if selector is None:
            raise UnknownProvider(provider_name)
        return selector

    def select_api_key(self, provider_name: str, exclude_index: int = -1) -> SelectedKey:
        """Select the next API key of a provider.

        Raises:
            UnknownProvider: If the provider is not registered.
            NoKeysAvailable: If the provider has no keys.
        """
        return self._selector(provider_name).select_key(exclude_index)

    def get_api_key_count(self, provider_name: str) -> int:
        """Return how many keys a provider has.

        Raises:
            UnknownProvider: If the provider is not registered.
        """
        return self._selector(provider_name).get_key_count()

    def resolve_model_route(self, model_name: str) -> RouteResolution | None:
        """Resolve a bare or qualified model name.

        Returns:
            The resolution, or None if the name is unknown or its provider is
            missing or disabled.
        """
        state = self._state
        route = state.router.lookup(model_name)
        if route is None:
            return None
        provider = state.providers.get(route.provider_name)
        if provider is None or not provider.enabled:
            return None
        return RouteResolution(
            provider=provider, original_model=route.model, target_model=route.model
        )

    def get_model_routes(self) -> list[ModelRoute]:
        return self._state.router.routes()

    def get_available_model_names(self) -> list[str]:
        """List bare and qualified names of every model of every enabled provider."""
        names: list[str] = []
        for provider in self.get_providers():
            if not provider.enabled:
                continue
            for model in provider.models:
                names.append(model)
                names.append(qualified_model_name(provider.name, model))
        return names

    def get_available_models(self) -> dict[str, Any]:
        """Build the model listing response body."""
        data = []
        for provider in self.get_providers():
            if not provider.enabled:
                continue
            for model in provider.models:
                for model_id in (model, qualified_model_name(provider.name, model)):
                    data.append(
                        {
                            "id": model_id,
                            "object": "model",
                            "owned_by": provider.name,
                            "provider": provider.name,
                        }
                    )
        return {"object": "list", "data": data}
