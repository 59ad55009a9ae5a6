from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from ai_worker.api.deps import get_enqueuer, get_jobs_repository
from ai_worker.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse, ProgressEventResponse
from ai_worker.config import Settings, get_settings
from ai_worker.services import jobs as job_service
from ai_worker.services.tasks.interface import TaskEnqueuer
from ai_worker.storage.jobs_repo import JobsRepository

router = APIRouter(tags=["jobs"])
logger = logging.getLogger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=JobCreateResponse)
async def create_job(
  request: JobCreateRequest,
  background_tasks: BackgroundTasks,
  settings: Annotated[Settings, Depends(get_settings)],
  jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repository)],
  enqueuer: Annotated[TaskEnqueuer | None, Depends(get_enqueuer)],
) -> JobCreateResponse:
  """Create a pending job."""
  return await job_service.create_job(request, settings, background_tasks, jobs_repo=jobs_repo, enqueuer=enqueuer)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repository)]) -> JobStatusResponse:
  """Fetch the status and result of a job."""
  return await job_service.get_job_status(job_id, jobs_repo=jobs_repo)


@router.get("/{job_id}/progress", response_model=list[ProgressEventResponse])
async def list_job_progress(
  job_id: str,
  jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repository)],
  after: Annotated[int | None, Query(ge=0)] = None,
) -> list[ProgressEventResponse]:
  """List progress events emitted after the ``after`` cursor."""
  return await job_service.list_job_progress(job_id, jobs_repo=jobs_repo, after=after)
