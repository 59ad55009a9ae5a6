from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

from ai_worker.config import Settings
from ai_worker.services.tasks.interface import TaskEnqueuer

DISPATCH_PATH = "/internal/tasks/dispatch"

logger = logging.getLogger(__name__)


class LocalHttpEnqueuer(TaskEnqueuer):
  """Triggers dispatch with a direct HTTP call, standing in for Cloud Tasks during development."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings

  def _should_use_asgi_transport(self, base_url: str) -> bool:
    """Route localhost calls in-process through the ASGI app."""
    hostname = (urlparse(base_url).hostname or "").lower()
    return hostname in {"localhost", "127.0.0.1", "::1", "0.0.0.0"}

  def _build_client(self, base_url: str) -> httpx.AsyncClient:
    # Internal dispatch never goes through environment proxies.
    if self._should_use_asgi_transport(base_url):
      from ai_worker.main import app

      return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url, trust_env=False)
    return httpx.AsyncClient(trust_env=False)

  def _task_headers(self) -> dict[str, str]:
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    return {"x-task-secret": self.settings.task_secret}

  async def enqueue(self, job_id: str) -> None:
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured, strictly required for LocalHttpEnqueuer.")

    url = f"{self.settings.base_url.rstrip('/')}{DISPATCH_PATH}"
    try:
      async with self._build_client(self.settings.base_url) as client:
        logger.info("Dispatching job %s locally to %s", job_id, url)
        # The endpoint acknowledges before the job runs, so a short deadline is enough.
        response = await client.post(url, json={"jobId": job_id}, headers=self._task_headers(), timeout=30.0)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
      logger.error("Local dispatch returned %s for job %s: %s", exc.response.status_code, job_id, exc.response.text)
      raise
    except httpx.RequestError as exc:
      logger.error("Failed to dispatch job %s locally: %s", job_id, exc)
      raise
