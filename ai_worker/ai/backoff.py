"""Retry logic for rate-limited inference calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_DELAYS: tuple[float, ...] = (5.0, 20.0, 50.0)
_QUOTA_MARKERS = ("resource exhausted", "resource_exhausted", "quota exceeded", "rate limit", "too many requests")


def is_retryable_error(exc: BaseException) -> bool:
  """Return True for 429 and quota errors from any provider SDK."""
  status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
  if status == 429:
    return True
  message = str(exc).lower()
  return "429" in message or any(marker in message for marker in _QUOTA_MARKERS)


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args, delays: Sequence[float] = DEFAULT_DELAYS, **kwargs) -> T:
  """
  Execute a coroutine function with retries for 429/quota errors.

  Each entry in ``delays`` is one retry; the final attempt propagates errors.
  """
  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not is_retryable_error(exc):
        raise
      logger.warning("Retry attempt %s/%s needed. Error: %s. Retrying in %ss...", attempt + 1, len(delays), exc, delay)
      await asyncio.sleep(delay)

  return await func(*args, **kwargs)
