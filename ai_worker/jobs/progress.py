"""Progress emission handed to job handlers."""

from __future__ import annotations

import logging

from ai_worker.jobs.models import ProgressEventRecord
from ai_worker.storage.jobs_repo import JobsRepository

MAX_DETAIL_CHARS = 2000

logger = logging.getLogger(__name__)


def _clamp_percent(percent: float | int | None) -> int | None:
  if percent is None:
    return None
  return max(0, min(100, int(round(percent))))


def _truncate(detail: str | None) -> str | None:
  return detail[:MAX_DETAIL_CHARS] if detail else None


class JobProgressContext:
  """Append-only progress log writer scoped to one job execution.

  A final event requested by the handler is held back until the engine has
  recorded the terminal status. ``complete`` writes it (or ``Completed``),
  ``fail`` replaces it with ``Failed``; either way exactly one final event is
  written per job.
  """

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo
    self._final_emitted = False
    self._held_final: tuple[str, int | None, str | None] | None = None
    self._last_percent: int | None = None

  @property
  def job_id(self) -> str:
    return self._job_id

  @property
  def final_emitted(self) -> bool:
    return self._final_emitted

  async def emit_progress(self, job_id: str, step_label: str, percent: float | int | None = None, detail: str | None = None, is_final: bool = False) -> ProgressEventRecord | None:
    """Append a progress event for the job this context belongs to."""
    if job_id != self._job_id:
      raise ValueError(f"Progress context for job {self._job_id} cannot emit events for job {job_id}.")

    if self._final_emitted or self._held_final is not None:
      logger.warning("Ignoring progress after final event job_id=%s step=%s", job_id, step_label)
      return None

    value = _clamp_percent(percent)
    if value is not None and self._last_percent is not None and value < self._last_percent:
      logger.debug("Progress moved backwards job_id=%s from=%s to=%s", job_id, self._last_percent, value)
    if value is not None:
      self._last_percent = value

    if is_final:
      self._held_final = (step_label, value, _truncate(detail))
      return None

    event = await self._jobs_repo.append_progress(job_id, step_label=step_label, percent=value, ai_message=_truncate(detail))
    logger.debug("Progress job_id=%s step=%s percent=%s", job_id, step_label, value)
    return event

  async def complete(self) -> ProgressEventRecord | None:
    """Write the success event: the handler's own final step, or ``Completed``."""
    step_label, percent, message = self._held_final or ("Completed", 100, None)
    return await self._write_final(step_label, percent, message)

  async def fail(self, message: str) -> ProgressEventRecord | None:
    """Write the ``Failed`` event, discarding any final step the handler asked for."""
    if self._held_final is not None:
      logger.info("Discarding handler final step job_id=%s step=%s", self._job_id, self._held_final[0])
    return await self._write_final("Failed", 100, _truncate(message))

  async def _write_final(self, step_label: str, percent: int | None, message: str | None) -> ProgressEventRecord | None:
    if self._final_emitted:
      return None
    event = await self._jobs_repo.append_progress(self._job_id, step_label=step_label, percent=percent, ai_message=message, is_final=True)
    self._final_emitted = True
    self._held_final = None
    return event
