from __future__ import annotations

from ai_worker.config import Settings
from ai_worker.services.tasks.interface import TaskEnqueuer
from ai_worker.services.tasks.local import LocalHttpEnqueuer


def get_task_enqueuer(settings: Settings) -> TaskEnqueuer:
  """Return the enqueuer for the configured task service provider."""
  if settings.task_service_provider == "gcp":
    from ai_worker.services.tasks.gcp import CloudTasksEnqueuer

    return CloudTasksEnqueuer(settings)
  return LocalHttpEnqueuer(settings)
