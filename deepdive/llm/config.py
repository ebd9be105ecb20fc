"""Configuration schemas for chat models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ModelConfig(BaseModel):
    """One call profile: provider, model and sampling limits.

    Frozen so it can key the model cache.

    Attributes:
        provider: Registered provider name
        model: Provider model identifier
        temperature: Sampling temperature (0.0-2.0)
        max_output_tokens: Upper bound on generated tokens
        api_key: Optional key overriding the stored credentials
    """

    model_config = ConfigDict(frozen=True)

    provider: Literal["gemini"]
    model: str
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=4096, ge=1)
    api_key: Optional[str] = None


class ProviderCredentials(BaseModel):
    """Provider API keys, kept out of ModelConfig so they never reach logs."""

    google_api_key: Optional[str] = None

    def key_for(self, provider: str) -> Optional[str]:
        """API key stored for ``provider``, if any."""
        return {"gemini": self.google_api_key}.get(provider)
