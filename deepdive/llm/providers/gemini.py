"""Google Gemini provider implementation."""

import logging
from typing import Any, Dict

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from .base import ModelProvider

logger = logging.getLogger(__name__)


class GeminiProvider(ModelProvider):
    """Google Gemini provider.

    Gemini accepts video URLs as media parts, which the storyboard step
    relies on.
    """

    @property
    def name(self) -> str:
        return "gemini"

    def validate_config(self, config: Dict[str, Any]) -> None:
        if not config.get("api_key"):
            logger.warning("Google API key not provided in model config, relying on credentials")

    def create_model(
        self,
        model: str,
        temperature: float,
        max_output_tokens: int,
        **kwargs: Any,
    ) -> BaseChatModel:
        """Create a ChatGoogleGenerativeAI instance."""
        if "api_key" in kwargs:
            kwargs["google_api_key"] = kwargs.pop("api_key")

        return ChatGoogleGenerativeAI(
            model=model,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            **kwargs,
        )
