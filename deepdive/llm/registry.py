"""Name-to-class lookup for chat model providers."""

import logging
from typing import Dict, Type

from .exceptions import ProviderNotFoundError
from .providers.base import ModelProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Providers known to the factory, keyed by their declared name."""

    def __init__(self):
        self._providers: Dict[str, Type[ModelProvider]] = {}

    def register(self, provider_class: Type[ModelProvider]) -> Type[ModelProvider]:
        """Add a provider class; returns it so this can decorate the class."""
        name = provider_class().name
        self._providers[name] = provider_class
        logger.debug("Provider %s registered", name)
        return provider_class

    def get(self, name: str) -> Type[ModelProvider]:
        """Provider class registered under ``name``.

        Raises:
            ProviderNotFoundError: If nothing is registered under that name
        """
        try:
            return self._providers[name]
        except KeyError:
            known = ", ".join(sorted(self._providers)) or "none"
            raise ProviderNotFoundError(f"Unknown LLM provider '{name}' (registered: {known})") from None


_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    return _registry
