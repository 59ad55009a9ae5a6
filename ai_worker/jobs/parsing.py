"""Coercion of model output into equipment and maintenance records.

Model output is treated as untrusted: unknown enum values fall back to
defaults, malformed links are dropped and indexes are renumbered when they
collide, so one bad field never fails the whole job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

from ai_worker.ai.json_parser import ModelOutputError
from ai_worker.jobs.contracts import DEFAULT_EQUIPMENT_CATEGORY, DEFAULT_RECURRENCE, EQUIPMENT_CATEGORIES, LINK_REGIONS, REPLACEMENT_LIKELIHOODS, TASK_CATEGORIES, TASK_PRIORITIES, DocumentationLink, EquipmentItem, MaintenanceTask, Recurrence, SparePartsLink

logger = logging.getLogger(__name__)


def is_absolute_http_url(value: Any) -> bool:
  """Return True for well-formed absolute http(s) URLs."""
  if not isinstance(value, str) or not value.strip() or any(char.isspace() for char in value.strip()):
    return False
  try:
    parts = urlsplit(value.strip())
  except ValueError:
    return False
  return parts.scheme in {"http", "https"} and bool(parts.netloc) and bool(parts.hostname)


def _as_int(value: Any) -> int | None:
  if isinstance(value, bool):
    return None
  if isinstance(value, int):
    return value
  if isinstance(value, float) and value.is_integer():
    return int(value)
  return None


def _as_positive_number(value: Any) -> float | None:
  if isinstance(value, bool) or not isinstance(value, int | float):
    return None
  return float(value) if value > 0 else None


def _as_text(value: Any) -> str | None:
  if value is None:
    return None
  text = str(value).strip()
  return text or None


def _choice(value: Any, allowed: Iterable[str], default: str) -> str:
  text = str(value).strip() if value is not None else ""
  return text if text in allowed else default


def _documentation_links(value: Any) -> list[DocumentationLink] | None:
  if not isinstance(value, list):
    return None
  links = []
  for entry in value:
    if not isinstance(entry, dict):
      continue
    title = _as_text(entry.get("title"))
    url = entry.get("url")
    if title and is_absolute_http_url(url):
      links.append(DocumentationLink(title=title, url=url.strip()))
  return links or None


def _spare_parts_links(value: Any) -> list[SparePartsLink] | None:
  if not isinstance(value, list):
    return None
  links = []
  for entry in value:
    if not isinstance(entry, dict):
      continue
    title = _as_text(entry.get("title"))
    url = entry.get("url")
    if title and is_absolute_http_url(url):
      links.append(SparePartsLink(region=_choice(entry.get("region"), LINK_REGIONS, "global"), title=title, url=url.strip()))
  return links or None


def coerce_equipment(document: Any) -> list[EquipmentItem]:
  """Coerce an ``{"equipment": [...]}`` document into equipment items."""
  raw_items = document.get("equipment") if isinstance(document, dict) else document
  if not isinstance(raw_items, list):
    raise ModelOutputError("Invalid response: equipment must be an array")

  items: list[EquipmentItem] = []
  used_indexes: set[int] = set()
  pending_parents: list[Any] = []
  for position, raw in enumerate(raw_items):
    if not isinstance(raw, dict):
      continue

    index = _as_int(raw.get("index"))
    if index is None or index in used_indexes:
      index = position
    while index in used_indexes:
      index += 1
    used_indexes.add(index)

    manufacturer = _as_text(raw.get("manufacturer"))
    model = _as_text(raw.get("model"))
    has_product = bool(manufacturer and model)
    specs = raw.get("specs")
    manufacturer_url = raw.get("manufacturer_url")
    item = EquipmentItem(
      index=index,
      name=_as_text(raw.get("name")) or "Unknown",
      category=_choice(raw.get("category"), EQUIPMENT_CATEGORIES, DEFAULT_EQUIPMENT_CATEGORY),
      subcategory=_as_text(raw.get("subcategory")),
      manufacturer=manufacturer,
      model=model,
      notes=_as_text(raw.get("notes")),
      # Product metadata is only kept when the product itself is identified.
      description=_as_text(raw.get("description")) if has_product else None,
      specs=specs if has_product and isinstance(specs, dict) and specs else None,
      manufacturer_url=manufacturer_url.strip() if has_product and is_absolute_http_url(manufacturer_url) else None,
      documentation_links=_documentation_links(raw.get("documentation_links")) if has_product else None,
      spare_parts_links=_spare_parts_links(raw.get("spare_parts_links")) if has_product else None,
      replacement_likelihood=_choice(raw.get("replacementLikelihood"), REPLACEMENT_LIKELIHOODS, "low"),
      replacement_reason=_as_text(raw.get("replacementReason")),
    )
    items.append(item)
    pending_parents.append(raw.get("parentIndex"))

  for item, raw_parent in zip(items, pending_parents, strict=True):
    parent = _as_int(raw_parent)
    item.parent_index = parent if parent is not None and parent != item.index and parent in used_indexes else None

  return items


def _coerce_recurrence(value: Any) -> Recurrence:
  if not isinstance(value, dict):
    return DEFAULT_RECURRENCE.model_copy()

  kind = value.get("type")
  days = _as_positive_number(value.get("interval_days"))
  hours = _as_positive_number(value.get("engine_hours"))
  if kind == "usage" and hours:
    return Recurrence(type="usage", engine_hours=round(hours))
  if kind == "time" and days:
    return Recurrence(type="time", interval_days=round(days))
  if hours:
    return Recurrence(type="usage", engine_hours=round(hours))
  if days:
    return Recurrence(type="time", interval_days=round(days))
  return DEFAULT_RECURRENCE.model_copy()


def coerce_maintenance_task(raw: dict[str, Any]) -> MaintenanceTask:
  """Coerce one raw task mapping, applying enum and recurrence defaults."""
  return MaintenanceTask(
    equipment_index=_as_int(raw.get("equipmentIndex")),
    title=_as_text(raw.get("title")) or "Maintenance Task",
    description=_as_text(raw.get("description")),
    category=_choice(raw.get("category"), TASK_CATEGORIES, "routine"),
    priority=_choice(raw.get("priority"), TASK_PRIORITIES, "medium"),
    recurrence=_coerce_recurrence(raw.get("recurrence")),
    estimated_hours=_as_positive_number(raw.get("estimated_hours")),
  )


def coerce_maintenance_tasks(document: Any) -> list[MaintenanceTask]:
  """Coerce a ``{"maintenanceTasks": [...]}`` document; anything else yields no tasks."""
  raw_tasks = document.get("maintenanceTasks") if isinstance(document, dict) else document
  if not isinstance(raw_tasks, list):
    logger.warning("Model response had no maintenanceTasks array")
    return []
  return [coerce_maintenance_task(raw) for raw in raw_tasks if isinstance(raw, dict)]
