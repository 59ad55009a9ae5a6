"""In-memory collaborators shared by the unit and route tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from ai_worker.ai.providers.base import CallOptions, InferenceError, InferenceResponse
from ai_worker.jobs.models import JobRecord, ProgressEventRecord
from ai_worker.jobs.worker import Continuation
from ai_worker.storage.products_repo import DESCRIPTIVE_FIELDS, CachedMaintenanceTask, ProductDetails, ProductRecord


class InMemoryJobsRepo:
  """Jobs repository double with the same conditional transition rules as Postgres."""

  def __init__(self) -> None:
    self.jobs: dict[str, JobRecord] = {}
    self.events: list[ProgressEventRecord] = []
    self.status_history: dict[str, list[str]] = {}
    self._counter = 0

  async def create_job(self, job_type: str, payload: dict[str, Any], *, job_id: str | None = None) -> JobRecord:
    job_id = job_id or f"job-{len(self.jobs) + 1}"
    record = JobRecord(job_id=job_id, job_type=job_type, payload=dict(payload), status="pending", created_at=datetime.now(UTC))
    self.jobs[job_id] = record
    self.status_history[job_id] = ["pending"]
    return record

  async def get_job(self, job_id: str) -> JobRecord | None:
    return self.jobs.get(job_id)

  async def mark_running(self, job_id: str) -> JobRecord | None:
    record = self.jobs.get(job_id)
    if record is None or record.status != "pending":
      return None
    return self._transition(job_id, status="running", started_at=datetime.now(UTC))

  async def mark_completed(self, job_id: str, result: dict[str, Any]) -> bool:
    record = self.jobs.get(job_id)
    if record is None or record.status != "running":
      return False
    self._transition(job_id, status="completed", result=result, completed_at=datetime.now(UTC))
    return True

  async def mark_failed(self, job_id: str, error: str) -> bool:
    record = self.jobs.get(job_id)
    if record is None or record.status != "running":
      return False
    self._transition(job_id, status="failed", error=error, completed_at=datetime.now(UTC))
    return True

  async def append_progress(self, job_id: str, *, step_label: str, percent: int | None = None, ai_message: str | None = None, is_final: bool = False) -> ProgressEventRecord:
    self._counter += 1
    event = ProgressEventRecord(id=self._counter, job_id=job_id, step_label=step_label, percent=percent, ai_message=ai_message, is_final=is_final, created_at=datetime.now(UTC))
    self.events.append(event)
    return event

  async def list_progress(self, job_id: str, *, after_id: int | None = None, limit: int = 200) -> list[ProgressEventRecord]:
    events = [event for event in self.events if event.job_id == job_id and (after_id is None or event.id > after_id)]
    return events[:limit]

  def events_for(self, job_id: str) -> list[ProgressEventRecord]:
    return [event for event in self.events if event.job_id == job_id]

  def _transition(self, job_id: str, **changes: Any) -> JobRecord:
    record = replace(self.jobs[job_id], **changes)
    self.jobs[job_id] = record
    self.status_history[job_id].append(record.status)
    return record


class InMemoryProductsRepo:
  """Product registry double keyed by (manufacturer, model)."""

  def __init__(self) -> None:
    self.products: dict[tuple[str, str], ProductRecord] = {}
    self.tasks: list[CachedMaintenanceTask] = []
    self.fail_writes = False
    self.insert_calls = 0

  def add_product(self, record: ProductRecord) -> None:
    self.products[record.key] = record

  async def insert_missing(self, products: Sequence[ProductDetails]) -> None:
    self.insert_calls += 1
    if self.fail_writes:
      raise RuntimeError("registry unavailable")
    for details in products:
      if details.key in self.products:
        continue
      self.products[details.key] = ProductRecord(
        id=f"prod-{len(self.products) + 1}",
        manufacturer=details.manufacturer,
        model=details.model,
        category=details.category,
        subcategory=details.subcategory,
        description=details.description,
        specs=dict(details.specs),
        manufacturer_url=details.manufacturer_url,
        documentation_links=list(details.documentation_links),
        spare_parts_links=list(details.spare_parts_links),
      )

  async def find_by_manufacturers(self, manufacturers: Iterable[str]) -> list[ProductRecord]:
    wanted = set(manufacturers)
    return [record for record in self.products.values() if record.manufacturer in wanted]

  async def fill_missing_fields(self, product_id: str, details: ProductDetails) -> set[str]:
    if self.fail_writes:
      raise RuntimeError("registry unavailable")
    for key, record in self.products.items():
      if record.id != product_id:
        continue
      changes = {}
      for name in DESCRIPTIVE_FIELDS:
        if not getattr(record, name) and getattr(details, name):
          changes[name] = getattr(details, name)
      self.products[key] = replace(record, **changes)
      return set(changes)
    return set()

  async def list_tasks(self, product_ids: Iterable[str]) -> list[CachedMaintenanceTask]:
    wanted = set(product_ids)
    return [task for task in self.tasks if task.product_registry_id in wanted]

  async def insert_tasks(self, tasks: Sequence[CachedMaintenanceTask]) -> int:
    if self.fail_writes:
      raise RuntimeError("task cache unavailable")
    existing = {(task.product_registry_id, task.title) for task in self.tasks}
    inserted = 0
    for task in tasks:
      key = (task.product_registry_id, task.title)
      if key in existing:
        continue
      existing.add(key)
      self.tasks.append(task)
      inserted += 1
    return inserted

  def get(self, manufacturer: str, model: str) -> ProductRecord:
    return self.products[(manufacturer, model)]


class DetachedTaskSpawner:
  """Spawn continuations as asyncio tasks and let tests wait for them."""

  def __init__(self) -> None:
    self._tasks: set[asyncio.Task[None]] = set()

  def __call__(self, continuation: Continuation) -> None:
    task = asyncio.create_task(continuation())
    self._tasks.add(task)
    task.add_done_callback(self._tasks.discard)

  async def drain(self) -> None:
    while self._tasks:
      await asyncio.gather(*list(self._tasks), return_exceptions=True)


class FakeInference:
  """Inference client that replays queued responses and records every call."""

  name = "fake"

  def __init__(self, *responses: str | Exception) -> None:
    self._responses = list(responses)
    self.calls: list[tuple[str, CallOptions]] = []

  def queue(self, *responses: str | Exception) -> None:
    self._responses.extend(responses)

  async def call(self, prompt: str, options: CallOptions) -> InferenceResponse:
    self.calls.append((prompt, options))
    if not self._responses:
      raise InferenceError("No fake response queued")
    response = self._responses.pop(0)
    if isinstance(response, Exception):
      raise response
    return InferenceResponse(content=response, model=options.model or "fake-model")
