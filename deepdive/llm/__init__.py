"""Chat model selection for the pipeline.

Gemini is the only registered provider; it is the one that accepts a video
URL as a media part.
"""

from .config import ModelConfig, ProviderCredentials
from .factory import CachedModelFactory, ModelFactory
from .providers import GeminiProvider
from .registry import ProviderRegistry, get_registry

get_registry().register(GeminiProvider)

__all__ = [
    "CachedModelFactory",
    "GeminiProvider",
    "ModelConfig",
    "ModelFactory",
    "ProviderCredentials",
    "ProviderRegistry",
    "get_registry",
]
