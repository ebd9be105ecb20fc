"""Shared chat model access for AI services."""

from langchain_core.language_models import BaseChatModel

from deepdive.config import settings
from deepdive.llm import CachedModelFactory, ModelConfig, ProviderCredentials


# Module-level factory instance for efficient model caching
_credentials = ProviderCredentials(
    google_api_key=settings.google_api_key,
)
_factory = CachedModelFactory(_credentials)


def get_model_config(
    temperature: float | None = None,
    max_output_tokens: int = 4096,
) -> ModelConfig:
    """Get model configuration from settings for one call profile."""
    return ModelConfig(
        provider=settings.llm_provider,
        model=settings.llm_model,
        temperature=settings.llm_temperature if temperature is None else temperature,
        max_output_tokens=max_output_tokens,
    )


def default_model_resolver(temperature: float, max_output_tokens: int) -> BaseChatModel:
    """Return the cached chat model for a (temperature, max_output_tokens) profile."""
    return _factory.create_model(get_model_config(temperature, max_output_tokens))
