"""Name-keyed transformer lookup."""

import logging
from typing import Union

from modelgate.transformers.base import Transformer

logger = logging.getLogger(__name__)

TransformerFactory = Union[type[Transformer], Transformer]


class TransformerRegistry:
    """Registry of transformer implementations keyed by name.

    An entry is either a Transformer subclass (instantiated per chain step) or a
    ready-made instance (shared by every chain that names it).
    """

    def __init__(self) -> None:
        self._factories: dict[str, TransformerFactory] = {}

    def register(self, name: str, factory: TransformerFactory) -> None:
        """Register a transformer class or instance under ``name``."""
        if name in self._factories:
            logger.debug(f"Replacing transformer registration: {name}")
        self._factories[name] = factory

    def get_transformer(self, name: str) -> TransformerFactory | None:
        """Return the class or instance registered under ``name``, if any."""
        return self._factories.get(name)


def create_default_registry() -> TransformerRegistry:
    """Create a registry holding the built-in transformers."""
    from modelgate.transformers.gemini import GeminiTransformer

    registry = TransformerRegistry()
    registry.register(GeminiTransformer.name, GeminiTransformer)
    return registry
