"""OpenRouter provider implementation using the openai SDK."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any

from openai import AsyncOpenAI

from ai_worker.ai.backoff import DEFAULT_DELAYS, retry_with_backoff
from ai_worker.ai.providers.base import CallOptions, InferenceClient, InferenceError, InferenceResponse

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterClient(InferenceClient):
  """OpenRouter chat completions client with optional web-search plugin."""

  def __init__(self, *, default_model: str, api_key: str | None = None, base_url: str | None = None, retry_delays: Sequence[float] = DEFAULT_DELAYS) -> None:
    self.name = "openrouter"
    self._default_model = default_model
    self._retry_delays = tuple(retry_delays)

    api_key = api_key or os.getenv("OPENROUTER_API_KEY")
    if not api_key:
      raise ValueError("OPENROUTER_API_KEY environment variable is required")

    # Optional attribution headers recognised by OpenRouter.
    default_headers = {}
    referer = os.getenv("OPENROUTER_HTTP_REFERER")
    if referer:
      default_headers["HTTP-Referer"] = referer
    title = os.getenv("OPENROUTER_TITLE")
    if title:
      default_headers["X-Title"] = title

    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or OPENROUTER_BASE_URL, default_headers=default_headers or None)

  def _build_request(self, prompt: str, options: CallOptions) -> dict[str, Any]:
    messages: list[dict[str, str]] = []
    if options.system_prompt:
      messages.append({"role": "system", "content": options.system_prompt})
    messages.append({"role": "user", "content": prompt})

    request: dict[str, Any] = {"model": options.model or self._default_model, "messages": messages, "temperature": options.temperature, "max_tokens": options.max_tokens}
    if options.web_search is not None:
      request["extra_body"] = {"plugins": [{"id": "web", "max_results": options.web_search.max_results}]}
    return request

  async def call(self, prompt: str, options: CallOptions) -> InferenceResponse:
    request = self._build_request(prompt, options)
    logger.info("OpenRouter request model=%s max_tokens=%s web_search=%s", request["model"], options.max_tokens, options.web_search is not None)
    response = await retry_with_backoff(self._client.chat.completions.create, delays=self._retry_delays, **request)

    if not response.choices:
      raise InferenceError("OpenRouter returned no choices.")
    choice = response.choices[0]
    content = choice.message.content or ""
    if not content.strip():
      raise InferenceError(f"OpenRouter returned an empty response (finish_reason={choice.finish_reason}).")
    if choice.finish_reason == "length":
      logger.warning("OpenRouter response truncated at max_tokens=%s", options.max_tokens)

    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    return InferenceResponse(content=content, model=response.model or request["model"], usage=usage)
