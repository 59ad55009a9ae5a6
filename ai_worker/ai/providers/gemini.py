"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from google import genai
from google.genai import types

from ai_worker.ai.backoff import DEFAULT_DELAYS, retry_with_backoff
from ai_worker.ai.providers.base import CallOptions, InferenceClient, InferenceError, InferenceResponse

logger = logging.getLogger(__name__)


class GeminiClient(InferenceClient):
  """Gemini client; web search maps to Google Search grounding."""

  def __init__(self, *, default_model: str, api_key: str | None = None, retry_delays: Sequence[float] = DEFAULT_DELAYS) -> None:
    self.name = "gemini"
    self._default_model = default_model
    self._retry_delays = tuple(retry_delays)

    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  def _build_config(self, options: CallOptions) -> types.GenerateContentConfig:
    tools = None
    if options.web_search is not None:
      # Grounding does not take a result cap; the prompt carries the bound instead.
      tools = [types.Tool(google_search=types.GoogleSearch())]
    return types.GenerateContentConfig(system_instruction=options.system_prompt, temperature=options.temperature, max_output_tokens=options.max_tokens, tools=tools)

  async def call(self, prompt: str, options: CallOptions) -> InferenceResponse:
    model = options.model or self._default_model
    logger.info("Gemini request model=%s max_tokens=%s web_search=%s", model, options.max_tokens, options.web_search is not None)
    # Use the async client to avoid blocking the asyncio event loop.
    response = await retry_with_backoff(self._client.aio.models.generate_content, delays=self._retry_delays, model=model, contents=prompt, config=self._build_config(options))

    text = response.text or ""
    if not text.strip():
      raise InferenceError("Gemini returned an empty response.")

    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count, "completion_tokens": response.usage_metadata.candidates_token_count, "total_tokens": response.usage_metadata.total_token_count}
    return InferenceResponse(content=text, model=model, usage=usage)
