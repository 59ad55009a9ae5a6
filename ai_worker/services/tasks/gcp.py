from __future__ import annotations

import json
import logging
from typing import Any

from google.cloud import tasks_v2

from ai_worker.config import Settings
from ai_worker.services.tasks.interface import TaskEnqueuer
from ai_worker.services.tasks.local import DISPATCH_PATH

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues dispatch triggers on a Google Cloud Tasks queue."""

  def __init__(self, settings: Settings, client: tasks_v2.CloudTasksClient | None = None) -> None:
    self.settings = settings
    self.client = client or tasks_v2.CloudTasksClient()

  def _build_task(self, job_id: str) -> dict[str, Any]:
    headers = {"Content-Type": "application/json"}
    if self.settings.task_secret:
      headers["X-Task-Secret"] = self.settings.task_secret

    http_request: dict[str, Any] = {
      "http_method": tasks_v2.HttpMethod.POST,
      "url": f"{self.settings.base_url.rstrip('/')}{DISPATCH_PATH}",
      "headers": headers,
      "body": json.dumps({"jobId": job_id}).encode(),
    }
    # Cloud Run invoker auth needs an OIDC identity; queues without one rely on the shared secret.
    if self.settings.cloud_tasks_service_account:
      http_request["oidc_token"] = {"service_account_email": self.settings.cloud_tasks_service_account}
    return {"http_request": http_request}

  async def enqueue(self, job_id: str) -> None:
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured.")
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured.")

    try:
      response = self.client.create_task(request={"parent": self.settings.cloud_tasks_queue_path, "task": self._build_task(job_id)})
    except Exception:
      logger.error("Failed to enqueue Cloud Task for job %s", job_id, exc_info=True)
      raise
    logger.info("Enqueued task %s for job %s", response.name, job_id)
