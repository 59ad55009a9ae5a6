"""Helpers shared by the generation handlers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ai_worker.jobs.contracts import MaintenanceTask
from ai_worker.jobs.parsing import coerce_maintenance_task
from ai_worker.storage.products_repo import CachedMaintenanceTask

RAW_PREVIEW_CHARS = 500

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class InvalidPayloadError(ValueError):
  """Raised when a job payload does not match its job type."""


def validate_payload(model: type[PayloadT], payload: dict[str, Any]) -> PayloadT:
  """Validate a job payload, flattening pydantic errors into one readable message."""
  try:
    return model.model_validate(payload)
  except ValidationError as exc:
    problems = []
    for error in exc.errors():
      location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
      problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    raise InvalidPayloadError("Invalid payload: " + "; ".join(problems)) from exc


def current_year() -> int:
  return datetime.now(UTC).year


def cached_to_task(cached: CachedMaintenanceTask, *, equipment_index: int | None) -> MaintenanceTask:
  """Rebuild a cached row as a task owned by ``equipment_index``."""
  return coerce_maintenance_task(
    {
      "equipmentIndex": equipment_index,
      "title": cached.title,
      "description": cached.description,
      "category": cached.category,
      "priority": cached.priority,
      "recurrence": cached.recurrence,
      "estimated_hours": cached.estimated_hours,
    }
  )


def task_to_cached(task: MaintenanceTask, *, product_registry_id: str) -> CachedMaintenanceTask:
  return CachedMaintenanceTask(
    product_registry_id=product_registry_id,
    title=task.title,
    description=task.description,
    category=task.category,
    priority=task.priority,
    recurrence=task.recurrence.to_wire(),
    estimated_hours=task.estimated_hours,
  )
