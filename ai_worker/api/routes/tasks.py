from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status

from ai_worker.api.deps import get_dispatcher
from ai_worker.api.models import DispatchRequest, DispatchResponse
from ai_worker.config import Settings, get_settings
from ai_worker.jobs.worker import JobDispatcher

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


def _authorize(settings: Settings, authorization: str | None, x_task_secret: str | None) -> None:
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Run OIDC occupies Authorization, so the dedicated header is checked first.
  secret_valid = secrets.compare_digest((x_task_secret or "").encode(), settings.task_secret.encode())
  bearer_valid = secrets.compare_digest((authorization or "").encode(), f"Bearer {settings.task_secret}".encode())
  if not secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to /tasks/dispatch")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


@router.post("/dispatch", status_code=status.HTTP_202_ACCEPTED, response_model=DispatchResponse)
async def dispatch_job(
  payload: DispatchRequest,
  background_tasks: BackgroundTasks,
  settings: Annotated[Settings, Depends(get_settings)],
  dispatcher: Annotated[JobDispatcher, Depends(get_dispatcher)],
  authorization: str | None = Header(default=None),
  x_task_secret: str | None = Header(default=None),
) -> DispatchResponse:
  """Claim a pending job and run it after the response is sent.

  Unknown or already-claimed jobs are acknowledged too so the queue does not retry them.
  """
  _authorize(settings, authorization, x_task_secret)
  logger.info("Received dispatch for job %s", payload.job_id)
  result = await dispatcher.dispatch(payload.job_id, background_tasks.add_task)
  if not result.accepted:
    logger.info("Job %s not started: %s", payload.job_id, result.outcome)
  return DispatchResponse(job_id=payload.job_id)
