"""Provider selection for inference calls."""

from __future__ import annotations

from ai_worker.ai.providers.base import InferenceClient
from ai_worker.config import Settings


def get_inference_client(settings: Settings) -> InferenceClient:
  """Build the inference client for the configured provider."""
  if settings.ai_provider == "gemini":
    from ai_worker.ai.providers.gemini import GeminiClient

    return GeminiClient(default_model=settings.generation_model, api_key=settings.gemini_api_key, retry_delays=settings.ai_retry_delays)

  if settings.ai_provider == "openrouter":
    from ai_worker.ai.providers.openrouter import OpenRouterClient

    return OpenRouterClient(default_model=settings.generation_model, api_key=settings.openrouter_api_key, base_url=settings.openrouter_base_url, retry_delays=settings.ai_retry_delays)

  raise ValueError(f"Unsupported AI provider '{settings.ai_provider}'.")
