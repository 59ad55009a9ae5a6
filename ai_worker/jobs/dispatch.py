"""Handler contract and registry for job types."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ai_worker.jobs.progress import JobProgressContext


class UnknownJobTypeError(ValueError):
  """Raised when no handler is registered for a job type."""


class JobHandler(Protocol):
  """Contract implemented by every long-running job type."""

  async def run(self, job_id: str, payload: dict[str, Any], ctx: JobProgressContext) -> dict[str, Any]:
    """Execute the job and return its result document."""


class HandlerRegistry:
  """Registry mapping job types to handlers."""

  def __init__(self, handlers: Mapping[str, JobHandler]) -> None:
    self._handlers = dict(handlers)

  def resolve(self, job_type: str) -> JobHandler:
    """Resolve the handler for a job type."""
    handler = self._handlers.get(job_type)
    if handler is None:
      raise UnknownJobTypeError(f"Unknown job type: {job_type}")
    return handler

  def job_types(self) -> list[str]:
    return sorted(self._handlers)

  def __contains__(self, job_type: object) -> bool:
    return job_type in self._handlers
