"""Job creation, observation and dispatcher wiring behind the HTTP routes."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import BackgroundTasks, HTTPException, status

from ai_worker.ai.router import get_inference_client
from ai_worker.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse, ProgressEventResponse
from ai_worker.config import Settings
from ai_worker.jobs.handlers import JOB_TYPES, build_default_registry
from ai_worker.jobs.models import JobRecord
from ai_worker.jobs.worker import JobDispatcher
from ai_worker.services.tasks.interface import TaskEnqueuer
from ai_worker.storage.factory import _get_jobs_repo, _get_products_repo
from ai_worker.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."
MAX_PROGRESS_PAGE = 200


@lru_cache
def build_dispatcher(settings: Settings) -> JobDispatcher:
  """Build the process-wide dispatcher with the default handler registry."""
  registry = build_default_registry(settings, inference=get_inference_client(settings), products_repo=_get_products_repo(settings))
  return JobDispatcher(jobs_repo=_get_jobs_repo(settings), registry=registry, timeout_seconds=settings.job_timeout_seconds)


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  return JobStatusResponse(
    id=record.job_id,
    job_type=record.job_type,
    status=record.status,
    result=record.result,
    error=record.error,
    created_at=record.created_at,
    started_at=record.started_at,
    completed_at=record.completed_at,
  )


async def _trigger_dispatch(enqueuer: TaskEnqueuer, job_id: str) -> None:
  # The job stays pending when the trigger fails; a later trigger can still claim it.
  try:
    await enqueuer.enqueue(job_id)
  except Exception:  # noqa: BLE001
    logger.error("Failed to trigger dispatch for job %s", job_id, exc_info=True)


async def create_job(request: JobCreateRequest, settings: Settings, background_tasks: BackgroundTasks, *, jobs_repo: JobsRepository, enqueuer: TaskEnqueuer | None) -> JobCreateResponse:
  """Persist a pending job and trigger its dispatch when auto-processing is on."""
  if request.job_type not in JOB_TYPES:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown job type: {request.job_type}")

  record = await jobs_repo.create_job(request.job_type, request.payload)
  logger.info("Created job %s type=%s", record.job_id, record.job_type)

  if settings.jobs_auto_process and enqueuer is not None:
    background_tasks.add_task(_trigger_dispatch, enqueuer, record.job_id)

  return JobCreateResponse(job_id=record.job_id, status=record.status)


async def get_job_status(job_id: str, *, jobs_repo: JobsRepository) -> JobStatusResponse:
  record = await jobs_repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return _job_status_from_record(record)


async def list_job_progress(job_id: str, *, jobs_repo: JobsRepository, after: int | None = None, limit: int = MAX_PROGRESS_PAGE) -> list[ProgressEventResponse]:
  """Return progress events after the ``after`` cursor in emission order."""
  if await jobs_repo.get_job(job_id) is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)

  events = await jobs_repo.list_progress(job_id, after_id=after, limit=min(limit, MAX_PROGRESS_PAGE))
  return [
    ProgressEventResponse(id=event.id, job_id=event.job_id, step_label=event.step_label, percent=event.percent, ai_message=event.ai_message, is_final=event.is_final, created_at=event.created_at)
    for event in events
  ]
