"""Domain models for asynchronous AI jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

JobStatus = Literal["pending", "running", "completed", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


@dataclass
class JobRecord:
  """Represents one asynchronous job row."""

  job_id: str
  job_type: str
  payload: dict[str, Any]
  status: JobStatus
  result: dict[str, Any] | None = None
  error: str | None = None
  created_at: datetime | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ProgressEventRecord:
  """One append-only progress event emitted while a job runs."""

  id: int
  job_id: str
  step_label: str
  percent: int | None
  ai_message: str | None
  is_final: bool
  created_at: datetime | None = None
