"""Inference provider clients."""

from .base import CallOptions, InferenceClient, InferenceError, InferenceResponse, WebSearchOptions

__all__ = ["CallOptions", "InferenceClient", "InferenceError", "InferenceResponse", "WebSearchOptions"]
