"""Base interfaces for inference providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class InferenceError(RuntimeError):
  """Raised when a provider call fails or returns no usable text."""


@dataclass(frozen=True)
class WebSearchOptions:
  """Bounded web-search augmentation for a single call."""

  max_results: int = 8


@dataclass(frozen=True)
class CallOptions:
  """Per-call tuning passed to an inference client."""

  model: str | None = None
  system_prompt: str | None = None
  temperature: float = 0.1
  max_tokens: int = 4000
  web_search: WebSearchOptions | None = None


@dataclass
class InferenceResponse:
  """Minimal model response structure."""

  content: str
  model: str
  usage: dict[str, int] | None = None


class InferenceClient(Protocol):
  """Text-in/text-out contract used by job handlers."""

  name: str

  async def call(self, prompt: str, options: CallOptions) -> InferenceResponse:
    """Send one prompt and return the raw text response."""
