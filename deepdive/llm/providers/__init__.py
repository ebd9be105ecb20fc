"""LLM provider implementations."""

from .base import ModelProvider
from .gemini import GeminiProvider

__all__ = [
    "ModelProvider",
    "GeminiProvider",
]
