"""Base interface for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from langchain_core.language_models import BaseChatModel


class ModelProvider(ABC):
    """Abstract base class for LLM providers.

    Each provider declares a unique name, validates its configuration and
    builds a configured chat model.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'gemini')."""
        pass

    @abstractmethod
    def create_model(
        self,
        model: str,
        temperature: float,
        max_output_tokens: int,
        **kwargs: Any,
    ) -> BaseChatModel:
        """Create and configure the model instance.

        Raises:
            ModelCreationError: If model creation fails
        """
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> None:
        """Validate provider-specific configuration."""
        pass
