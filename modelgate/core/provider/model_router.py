"""Model routing table.

Maps both bare model names (``gpt-4o``) and qualified names (``openai,gpt-4o``)
to the provider that serves them.
"""

from collections.abc import Iterable

from modelgate.core.provider.models import ModelRoute, qualified_model_name


class ModelRouter:
    """Routing table with explicit bare-name claims.

    Responsibilities:
    - Always route ``provider,model`` to that provider
    - Route a bare model name to the first provider that claimed it
    - Drop a bare name when its owner stops serving it

    The registry never edits a published router; it edits a ``copy()`` and
    swaps it in, so lookups need no lock.
    """

    def __init__(self) -> None:
        self._routes: dict[str, ModelRoute] = {}
        self._claims: dict[str, str] = {}

    def copy(self) -> "ModelRouter":
        clone = ModelRouter()
        clone._routes = dict(self._routes)
        clone._claims = dict(self._claims)
        return clone

    def lookup(self, name: str) -> ModelRoute | None:
        """Return the route registered under a bare or qualified name."""
        return self._routes.get(name)

    def claimed_by(self, model: str) -> str | None:
        """Return the provider owning the bare name ``model``."""
        return self._claims.get(model)

    def routes(self) -> list[ModelRoute]:
        return list(self._routes.values())

    def keys(self) -> list[str]:
        return list(self._routes)

    def add_models(self, provider_name: str, models: Iterable[str]) -> None:
        """Insert routes for ``models``: qualified always, bare only if the name is free."""
        for model in models:
            route = ModelRoute(provider_name=provider_name, model=model)
            self._routes[route.qualified_name] = route
            # A bare name never shadows an existing entry, qualified ones included
            if model not in self._claims and model not in self._routes:
                self._claims[model] = provider_name
                self._routes[model] = route

    def remove_models(self, provider_name: str, models: Iterable[str]) -> None:
        """Drop a provider's routes for ``models``, including the bare names it owns.

        Other providers' routes are left as they are; a released bare name is
        not handed to anyone else.
        """
        for model in models:
            self._routes.pop(qualified_model_name(provider_name, model), None)
            if self._claims.get(model) == provider_name:
                del self._claims[model]
                self._routes.pop(model, None)

    def replace_models(
        self, provider_name: str, old_models: Iterable[str], new_models: Iterable[str]
    ) -> None:
        """Regenerate a provider's routes for a new model list.

        Bare names the provider still serves keep their claim.
        """
        new_models = list(new_models)
        kept = set(new_models)
        old_models = list(old_models)

        for model in old_models:
            self._routes.pop(qualified_model_name(provider_name, model), None)
        self.remove_models(provider_name, [m for m in old_models if m not in kept])
        self.add_models(provider_name, new_models)
