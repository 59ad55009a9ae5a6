"""FastAPI dependencies wiring repositories and services to the routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from ai_worker.config import Settings, get_settings
from ai_worker.jobs.worker import JobDispatcher
from ai_worker.services.jobs import build_dispatcher
from ai_worker.services.tasks.factory import get_task_enqueuer
from ai_worker.services.tasks.interface import TaskEnqueuer
from ai_worker.storage.factory import _get_jobs_repo
from ai_worker.storage.jobs_repo import JobsRepository


def get_jobs_repository(settings: Annotated[Settings, Depends(get_settings)]) -> JobsRepository:
  return _get_jobs_repo(settings)


def get_dispatcher(settings: Annotated[Settings, Depends(get_settings)]) -> JobDispatcher:
  return build_dispatcher(settings)


def get_enqueuer(settings: Annotated[Settings, Depends(get_settings)]) -> TaskEnqueuer | None:
  if not settings.jobs_auto_process:
    return None
  return get_task_enqueuer(settings)
