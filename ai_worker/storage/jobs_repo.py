"""Storage interfaces for asynchronous jobs and their progress log."""

from __future__ import annotations

from typing import Any, Protocol

from ai_worker.jobs.models import JobRecord, ProgressEventRecord


class JobsRepository(Protocol):
  """Repository contract for job persistence.

  Status writes are conditional so the lifecycle stays forward-only:
  ``mark_running`` only moves a ``pending`` job, and the terminal writers only
  move a ``running`` job.
  """

  async def create_job(self, job_type: str, payload: dict[str, Any], *, job_id: str | None = None) -> JobRecord:
    """Persist a new pending job."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def mark_running(self, job_id: str) -> JobRecord | None:
    """Claim a pending job; return None when it was not pending."""

  async def mark_completed(self, job_id: str, result: dict[str, Any]) -> bool:
    """Store the result of a running job."""

  async def mark_failed(self, job_id: str, error: str) -> bool:
    """Store the error of a running job."""

  async def append_progress(self, job_id: str, *, step_label: str, percent: int | None = None, ai_message: str | None = None, is_final: bool = False) -> ProgressEventRecord:
    """Append one progress event."""

  async def list_progress(self, job_id: str, *, after_id: int | None = None, limit: int = 200) -> list[ProgressEventRecord]:
    """Return progress events in emission order."""
