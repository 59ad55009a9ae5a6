from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from ai_worker.jobs.models import JobStatus


class DispatchRequest(BaseModel):
  """Trigger body sent by the task queue."""

  model_config = ConfigDict(populate_by_name=True)

  job_id: StrictStr = Field(alias="jobId", min_length=1)


class DispatchResponse(BaseModel):
  """Acknowledgement returned before the job runs."""

  model_config = ConfigDict(populate_by_name=True)

  accepted: bool = True
  job_id: StrictStr = Field(alias="jobId")


class JobCreateRequest(BaseModel):
  """Request payload for creating a pending job."""

  model_config = ConfigDict(populate_by_name=True)

  job_type: StrictStr = Field(alias="jobType", min_length=1)
  payload: dict[str, Any] = Field(default_factory=dict)


class JobCreateResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  job_id: StrictStr = Field(alias="jobId")
  status: JobStatus = "pending"


class JobStatusResponse(BaseModel):
  """Job row as exposed to observers."""

  id: StrictStr
  job_type: StrictStr
  status: JobStatus
  result: dict[str, Any] | None = None
  error: str | None = None
  created_at: datetime | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None


class ProgressEventResponse(BaseModel):
  id: int
  job_id: StrictStr
  step_label: StrictStr
  percent: int | None = None
  ai_message: str | None = None
  is_final: bool = False
  created_at: datetime | None = None
