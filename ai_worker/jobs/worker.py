"""Dispatcher that claims pending jobs and runs their handlers detached from the trigger."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from ai_worker.jobs.dispatch import HandlerRegistry
from ai_worker.jobs.models import JobRecord
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.storage.jobs_repo import JobsRepository

Continuation = Callable[[], Awaitable[None]]
Spawn = Callable[[Continuation], None]
DispatchOutcome = Literal["accepted", "not_found", "skipped"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
  """Outcome of a dispatch attempt, reported back to the trigger."""

  job_id: str
  outcome: DispatchOutcome

  @property
  def accepted(self) -> bool:
    return self.outcome == "accepted"


class JobDispatcher:
  """Coordinates the pending -> running -> completed/failed lifecycle."""

  def __init__(self, *, jobs_repo: JobsRepository, registry: HandlerRegistry, timeout_seconds: float | None = None) -> None:
    self._jobs_repo = jobs_repo
    self._registry = registry
    self._timeout_seconds = timeout_seconds

  async def dispatch(self, job_id: str, spawn: Spawn) -> DispatchResult:
    """Claim a pending job and hand its execution to ``spawn``."""
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      logger.error("Dispatch ignored; job %s not found", job_id)
      return DispatchResult(job_id=job_id, outcome="not_found")

    if job.is_terminal:
      logger.warning("Dispatch ignored; job %s already finished as %s", job_id, job.status)
      return DispatchResult(job_id=job_id, outcome="skipped")
    if job.status != "pending":
      logger.warning("Dispatch ignored; job %s is %s, not pending", job_id, job.status)
      return DispatchResult(job_id=job_id, outcome="skipped")

    claimed = await self._jobs_repo.mark_running(job_id)
    if claimed is None:
      # Another trigger claimed the job between the read and the conditional update.
      logger.warning("Dispatch ignored; job %s was claimed concurrently", job_id)
      return DispatchResult(job_id=job_id, outcome="skipped")

    logger.info("Dispatching job %s type=%s", job_id, claimed.job_type)
    spawn(functools.partial(self.run_job, claimed))
    return DispatchResult(job_id=job_id, outcome="accepted")

  async def run_job(self, job: JobRecord) -> None:
    """Run the handler for a claimed job and record its terminal state."""
    ctx = JobProgressContext(job_id=job.job_id, jobs_repo=self._jobs_repo)
    try:
      handler = self._registry.resolve(job.job_type)
      result = await self._run_with_timeout(handler.run(job.job_id, dict(job.payload or {}), ctx))
      if not isinstance(result, dict):
        raise TypeError(f"Handler for {job.job_type} returned {type(result).__name__}, expected a mapping.")
      completed = await self._jobs_repo.mark_completed(job.job_id, result)
    except Exception as exc:  # noqa: BLE001
      logger.error("Job %s failed type=%s", job.job_id, job.job_type, exc_info=True)
      await self._fail(job, _describe_error(exc), ctx)
      return

    if not completed:
      logger.warning("Job %s was no longer running when completing", job.job_id)
      return

    # The job is already completed here, so a progress write error must not turn into a failure.
    try:
      await ctx.complete()
    except Exception:  # noqa: BLE001
      logger.error("Failed to record final progress for job %s", job.job_id, exc_info=True)
    logger.info("Job %s completed", job.job_id)

  async def _run_with_timeout(self, awaitable: Awaitable[Any]) -> Any:
    if self._timeout_seconds is None:
      return await awaitable
    try:
      return await asyncio.wait_for(awaitable, timeout=self._timeout_seconds)
    except TimeoutError as exc:
      raise JobTimeoutError(f"Job timed out after {self._timeout_seconds:g} seconds") from exc

  async def _fail(self, job: JobRecord, message: str, ctx: JobProgressContext) -> None:
    try:
      if not await self._jobs_repo.mark_failed(job.job_id, message):
        logger.warning("Job %s was no longer running when recording failure", job.job_id)
        return
      await ctx.fail(message)
    except Exception:  # noqa: BLE001
      logger.error("Failed to record failure for job %s", job.job_id, exc_info=True)


class JobTimeoutError(TimeoutError):
  """Raised when a handler exceeds the configured execution timeout."""


def _describe_error(exc: BaseException) -> str:
  message = str(exc).strip()
  return message or type(exc).__name__
