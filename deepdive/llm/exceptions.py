"""Errors raised while building chat models."""


class LLMModuleError(Exception):
    """Base class for chat model construction errors."""


class ProviderNotFoundError(LLMModuleError):
    """No provider is registered under the requested name."""


class ModelCreationError(LLMModuleError):
    """The provider could not build the requested model."""
