"""Chat model construction for the pipeline's call profiles."""

import logging
from typing import Dict, Optional

from langchain_core.language_models import BaseChatModel

from .config import ModelConfig, ProviderCredentials
from .exceptions import ModelCreationError
from .registry import get_registry

logger = logging.getLogger(__name__)


class ModelFactory:
    """Builds a chat model for a ModelConfig through the provider registry.

    The api key on the config wins over the stored provider credentials.
    """

    def __init__(self, credentials: Optional[ProviderCredentials] = None):
        self._credentials = credentials or ProviderCredentials()
        self._registry = get_registry()

    def create_model(self, config: ModelConfig) -> BaseChatModel:
        """Build a chat model for one call profile.

        Args:
            config: Provider, model name and sampling parameters

        Returns:
            Configured chat model

        Raises:
            ModelCreationError: If the provider is unknown or rejects the config
        """
        try:
            provider = self._registry.get(config.provider)()
            provider.validate_config(config.model_dump())

            extra = {}
            api_key = config.api_key or self._credentials.key_for(config.provider)
            if api_key:
                extra["api_key"] = api_key

            model = provider.create_model(
                model=config.model,
                temperature=config.temperature,
                max_output_tokens=config.max_output_tokens,
                **extra,
            )
        except Exception as e:
            logger.error("Could not build %s model %s: %s", config.provider, config.model, e)
            raise ModelCreationError(f"Model creation failed: {e}") from e

        logger.info(
            "Built %s model %s (temperature=%s, max_output_tokens=%s)",
            config.provider,
            config.model,
            config.temperature,
            config.max_output_tokens,
        )
        return model


class CachedModelFactory(ModelFactory):
    """ModelFactory that builds each call profile once.

    ModelConfig is frozen, so the config itself keys the cache.
    """

    def __init__(self, credentials: Optional[ProviderCredentials] = None):
        super().__init__(credentials)
        self._models: Dict[ModelConfig, BaseChatModel] = {}

    def create_model(self, config: ModelConfig) -> BaseChatModel:
        model = self._models.get(config)
        if model is None:
            model = super().create_model(config)
            self._models[config] = model
        return model
