from __future__ import annotations

import json

import pytest

from ai_worker.jobs.handlers.equipment_maintenance import EquipmentMaintenanceHandler
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.storage.products_repo import CachedMaintenanceTask
from worker_fakes import FakeInference, InMemoryJobsRepo, InMemoryProductsRepo

PAYLOAD = {
  "equipmentName": "Main Engine",
  "category": "engine",
  "subcategory": "diesel",
  "manufacturer": "Yanmar",
  "model": "3YM30",
  "yearInstalled": 2015,
  "boatMakeModel": "Bavaria 37",
  "boatId": "boat-7",
  "equipmentId": "eq-3",
}


async def _run(handler: EquipmentMaintenanceHandler, payload: dict) -> tuple[dict, InMemoryJobsRepo]:
  jobs = InMemoryJobsRepo()
  await jobs.create_job("generate-equipment-maintenance", payload, job_id="job-1")
  ctx = JobProgressContext(job_id="job-1", jobs_repo=jobs)
  result = await handler.run("job-1", payload, ctx)
  await ctx.complete()
  return result, jobs


@pytest.mark.anyio
async def test_cached_tasks_are_served_without_inference() -> None:
  products = InMemoryProductsRepo()
  products.tasks.append(CachedMaintenanceTask(product_registry_id="prod-1", title="Change oil", description="Every season", category="routine", priority="high", recurrence={"type": "usage", "engine_hours": 250}, estimated_hours=1.0))
  inference = FakeInference()

  result, jobs = await _run(EquipmentMaintenanceHandler(inference, products), {**PAYLOAD, "productRegistryId": "prod-1"})

  assert inference.calls == []
  assert result == {
    "maintenanceTasks": [
      {"title": "Change oil", "description": "Every season", "category": "routine", "priority": "high", "recurrence": {"type": "usage", "engine_hours": 250}, "estimated_hours": 1.0},
    ]
  }
  events = jobs.events_for("job-1")
  assert [(event.step_label, event.percent, event.is_final) for event in events] == [("Checking maintenance task cache", 15, False), ("Found cached maintenance tasks", 100, True)]


@pytest.mark.anyio
async def test_generated_tasks_are_cached_for_linked_products() -> None:
  products = InMemoryProductsRepo()
  inference = FakeInference(json.dumps({"maintenanceTasks": [{"title": "Replace impeller", "category": "routine", "priority": "medium", "recurrence": {"type": "time", "interval_days": 365}}]}))

  result, jobs = await _run(EquipmentMaintenanceHandler(inference, products, generation_model="gen"), {**PAYLOAD, "productRegistryId": "prod-2"})

  prompt, options = inference.calls[0]
  assert "Yanmar 3YM30 (diesel) installed 2015" in prompt
  assert "Bavaria 37" in prompt
  assert options.web_search is None
  assert options.model == "gen"
  assert [task["title"] for task in result["maintenanceTasks"]] == ["Replace impeller"]
  assert "equipmentIndex" not in result["maintenanceTasks"][0]
  assert [(task.product_registry_id, task.title) for task in products.tasks] == [("prod-2", "Replace impeller")]
  assert [event.percent for event in jobs.events_for("job-1")] == [15, 25, 85, 100]


@pytest.mark.anyio
async def test_unlinked_equipment_is_not_cached() -> None:
  products = InMemoryProductsRepo()
  inference = FakeInference(json.dumps({"maintenanceTasks": [{"title": "Inspect"}]}))

  result, jobs = await _run(EquipmentMaintenanceHandler(inference, products), PAYLOAD)

  assert products.tasks == []
  assert result["maintenanceTasks"][0]["recurrence"] == {"type": "time", "interval_days": 365}
  assert [event.percent for event in jobs.events_for("job-1")] == [25, 85, 100]


@pytest.mark.anyio
async def test_cache_write_failure_is_swallowed() -> None:
  products = InMemoryProductsRepo()
  products.fail_writes = True
  inference = FakeInference(json.dumps({"maintenanceTasks": [{"title": "Inspect"}]}))

  result, _ = await _run(EquipmentMaintenanceHandler(inference, products), {**PAYLOAD, "productRegistryId": "prod-3"})

  assert [task["title"] for task in result["maintenanceTasks"]] == ["Inspect"]
