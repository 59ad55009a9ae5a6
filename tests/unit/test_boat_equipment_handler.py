from __future__ import annotations

import json

import pytest

from ai_worker.ai.json_parser import ModelOutputError
from ai_worker.jobs.handlers.boat_equipment import EQUIPMENT_MAX_TOKENS, MAINTENANCE_MAX_TOKENS, BoatEquipmentHandler
from ai_worker.jobs.handlers.common import InvalidPayloadError
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.storage.products_repo import CachedMaintenanceTask, ProductRecord
from worker_fakes import FakeInference, InMemoryJobsRepo, InMemoryProductsRepo

PAYLOAD = {
  "makeModel": "Hallberg-Rassy 42",
  "boatId": "boat-1",
  "yearBuilt": 2000,
  "selectedCategories": ["engine", "navigation"],
  "maintenanceCategories": ["engine"],
}

ENGINE = {
  "index": 0,
  "name": "Main Engine",
  "category": "engine",
  "manufacturer": "Volvo Penta",
  "model": "D2-40",
  "parentIndex": None,
  "description": "Four cylinder marine diesel.",
  "specs": {"power": "40hp"},
  "manufacturer_url": "https://www.volvopenta.com/d2-40",
  "documentation_links": [{"title": "Operator manual", "url": "https://example.com/d2-40.pdf"}],
  "spare_parts_links": [],
  "replacementLikelihood": "low",
  "replacementReason": None,
}
PUMP = {"index": 1, "name": "Raw water pump", "category": "engine", "parentIndex": 0}
PLOTTER = {"index": 2, "name": "Chartplotter", "category": "navigation", "manufacturer": "Raymarine", "model": "Axiom 9"}


def _equipment_response(*items: dict) -> str:
  return "Research summary follows.\n```json\n" + json.dumps({"equipment": list(items)}) + "\n```"


def _tasks_response(*tasks: dict) -> str:
  return json.dumps({"maintenanceTasks": list(tasks)})


OIL_CHANGE = {"equipmentIndex": 0, "title": "Change engine oil", "category": "routine", "priority": "high", "recurrence": {"type": "usage", "engine_hours": 150}, "estimated_hours": 1.5}
IMPELLER = {"equipmentIndex": 1, "title": "Replace impeller", "category": "routine", "priority": "medium", "recurrence": {"type": "time", "interval_days": 365}}


async def _run(handler: BoatEquipmentHandler, payload: dict, *, job_id: str = "job-1") -> tuple[dict, InMemoryJobsRepo]:
  jobs = InMemoryJobsRepo()
  await jobs.create_job("generate-boat-equipment", payload, job_id=job_id)
  ctx = JobProgressContext(job_id=job_id, jobs_repo=jobs)
  result = await handler.run(job_id, payload, ctx)
  await ctx.complete()
  return result, jobs


def _handler(inference: FakeInference, products: InMemoryProductsRepo) -> BoatEquipmentHandler:
  return BoatEquipmentHandler(inference, products, research_model="research", generation_model="generation", web_search_max_results=5, clock=lambda: 2026)


@pytest.mark.anyio
async def test_two_phase_generation_links_products_and_caches_tasks() -> None:
  inference = FakeInference(
    _equipment_response(ENGINE, PUMP, PLOTTER),
    _tasks_response(OIL_CHANGE, IMPELLER, {"equipmentIndex": 2, "title": "Update firmware"}),
  )
  products = InMemoryProductsRepo()

  result, jobs = await _run(_handler(inference, products), PAYLOAD)

  assert result["boatId"] == "boat-1"
  engine, pump, plotter = result["equipment"]
  assert engine["productRegistryId"] == products.get("Volvo Penta", "D2-40").id
  assert plotter["productRegistryId"] == products.get("Raymarine", "Axiom 9").id
  assert pump["productRegistryId"] is None
  assert pump["parentIndex"] == 0
  assert engine["replacementLikelihood"] == "high"
  assert engine["replacementReason"]

  assert [(task["equipmentIndex"], task["title"]) for task in result["maintenanceTasks"]] == [(0, "Change engine oil"), (1, "Replace impeller")]
  assert [(task.product_registry_id, task.title) for task in products.tasks] == [(engine["productRegistryId"], "Change engine oil")]

  research_prompt, research_options = inference.calls[0]
  assert "Hallberg-Rassy 42" in research_prompt
  assert research_options.web_search is not None and research_options.web_search.max_results == 5
  assert research_options.max_tokens == EQUIPMENT_MAX_TOKENS
  assert research_options.model == "research"

  maintenance_prompt, maintenance_options = inference.calls[1]
  assert "0: Main Engine (Volvo Penta D2-40) [engine]" in maintenance_prompt
  assert "Chartplotter" not in maintenance_prompt
  assert maintenance_options.web_search is None
  assert maintenance_options.max_tokens == MAINTENANCE_MAX_TOKENS

  events = jobs.events_for("job-1")
  assert [event.percent for event in events] == [10, 20, 50, 55, 60, 70, 85, 100]
  assert events[2].ai_message.startswith("Research summary follows.")
  assert events[-1].is_final and events[-1].step_label == "Equipment & maintenance ready"


@pytest.mark.anyio
async def test_tasks_cached_by_one_job_are_reused_by_the_next() -> None:
  products = InMemoryProductsRepo()
  first = FakeInference(_equipment_response(ENGINE), _tasks_response(OIL_CHANGE))
  await _run(_handler(first, products), PAYLOAD, job_id="job-a")

  second = FakeInference(_equipment_response({**ENGINE, "index": 5}))
  result, _ = await _run(_handler(second, products), PAYLOAD, job_id="job-b")

  assert len(second.calls) == 1
  assert [(task["equipmentIndex"], task["title"]) for task in result["maintenanceTasks"]] == [(5, "Change engine oil")]
  assert result["maintenanceTasks"][0]["recurrence"] == {"type": "usage", "engine_hours": 150}
  assert len(products.products) == 1


@pytest.mark.anyio
async def test_cached_items_are_excluded_from_generation() -> None:
  products = InMemoryProductsRepo()
  products.add_product(ProductRecord(id="prod-engine", manufacturer="Volvo Penta", model="D2-40", category="engine", subcategory=None, description="Known", specs={"power": "40hp"}, manufacturer_url=None, documentation_links=[], spare_parts_links=[]))
  products.tasks.append(CachedMaintenanceTask(product_registry_id="prod-engine", title="Check belt", description=None, category="inspection", priority="medium", recurrence={"type": "time", "interval_days": 180}, estimated_hours=None))
  inference = FakeInference(_equipment_response(ENGINE, PUMP), _tasks_response(IMPELLER))

  result, _ = await _run(_handler(inference, products), PAYLOAD)

  maintenance_prompt, _ = inference.calls[1]
  assert "1: Raw water pump [engine]" in maintenance_prompt
  assert "Main Engine" not in maintenance_prompt
  assert sorted(task["title"] for task in result["maintenanceTasks"]) == ["Check belt", "Replace impeller"]


@pytest.mark.anyio
async def test_registry_rows_are_enriched_only_where_empty() -> None:
  products = InMemoryProductsRepo()
  products.add_product(ProductRecord(id="prod-engine", manufacturer="Volvo Penta", model="D2-40", category="engine", subcategory=None, description="Curated description", specs={}, manufacturer_url=None, documentation_links=[], spare_parts_links=[]))
  inference = FakeInference(_equipment_response(ENGINE), _tasks_response(OIL_CHANGE))

  result, _ = await _run(_handler(inference, products), PAYLOAD)

  record = products.get("Volvo Penta", "D2-40")
  assert result["equipment"][0]["productRegistryId"] == "prod-engine"
  assert record.description == "Curated description"
  assert record.specs == {"power": "40hp"}
  assert record.manufacturer_url == "https://www.volvopenta.com/d2-40"


BARE_ENGINE = {"index": 0, "name": "Main Engine", "category": "engine", "manufacturer": "Volvo Penta", "model": "D2-40"}
SPARE_ENGINE = {
  "index": 1,
  "name": "Spare engine",
  "category": "engine",
  "manufacturer": "Volvo Penta",
  "model": "D2-40",
  "description": "Four cylinder diesel",
  "manufacturer_url": "https://www.volvopenta.com/d2-40",
}


@pytest.mark.anyio
async def test_items_sharing_a_product_pool_their_details() -> None:
  products = InMemoryProductsRepo()
  inference = FakeInference(_equipment_response(BARE_ENGINE, SPARE_ENGINE), _tasks_response(OIL_CHANGE))

  result, _ = await _run(_handler(inference, products), PAYLOAD)

  record = products.get("Volvo Penta", "D2-40")
  assert len(products.products) == 1
  assert record.description == "Four cylinder diesel"
  assert record.manufacturer_url == "https://www.volvopenta.com/d2-40"
  assert {item["productRegistryId"] for item in result["equipment"]} == {record.id}


@pytest.mark.anyio
async def test_pooled_details_enrich_an_empty_registry_row() -> None:
  products = InMemoryProductsRepo()
  products.add_product(ProductRecord(id="prod-engine", manufacturer="Volvo Penta", model="D2-40", category="engine", subcategory=None, description=None, specs={}, manufacturer_url=None, documentation_links=[], spare_parts_links=[]))
  inference = FakeInference(_equipment_response(BARE_ENGINE, SPARE_ENGINE), _tasks_response(OIL_CHANGE))

  await _run(_handler(inference, products), PAYLOAD)

  record = products.get("Volvo Penta", "D2-40")
  assert record.description == "Four cylinder diesel"
  assert record.manufacturer_url == "https://www.volvopenta.com/d2-40"


@pytest.mark.anyio
async def test_cache_write_failures_do_not_fail_the_job() -> None:
  products = InMemoryProductsRepo()
  products.fail_writes = True
  inference = FakeInference(_equipment_response(ENGINE, PUMP), _tasks_response(OIL_CHANGE, IMPELLER))

  result, jobs = await _run(_handler(inference, products), PAYLOAD)

  assert products.insert_calls == 1
  assert all(item["productRegistryId"] is None for item in result["equipment"])
  assert len(result["maintenanceTasks"]) == 2
  assert jobs.events_for("job-1")[-1].is_final


@pytest.mark.anyio
async def test_no_generation_call_when_nothing_needs_tasks() -> None:
  inference = FakeInference(_equipment_response(PLOTTER))

  result, _ = await _run(_handler(inference, InMemoryProductsRepo()), PAYLOAD)

  assert len(inference.calls) == 1
  assert result["maintenanceTasks"] == []


@pytest.mark.anyio
async def test_maintenance_categories_default_to_selected_categories() -> None:
  payload = {key: value for key, value in PAYLOAD.items() if key != "maintenanceCategories"}
  inference = FakeInference(_equipment_response(ENGINE, PLOTTER), _tasks_response(OIL_CHANGE))

  await _run(_handler(inference, InMemoryProductsRepo()), payload)

  maintenance_prompt, _ = inference.calls[1]
  assert "Chartplotter" in maintenance_prompt


@pytest.mark.anyio
async def test_without_build_year_replacement_is_low() -> None:
  payload = {key: value for key, value in PAYLOAD.items() if key != "yearBuilt"}
  inference = FakeInference(_equipment_response({**ENGINE, "replacementLikelihood": "high", "replacementReason": "Old"}), _tasks_response())

  result, _ = await _run(_handler(inference, InMemoryProductsRepo()), payload)

  assert result["equipment"][0]["replacementLikelihood"] == "low"
  assert result["equipment"][0]["replacementReason"] is None


@pytest.mark.anyio
async def test_invalid_payload_is_rejected() -> None:
  inference = FakeInference()
  with pytest.raises(InvalidPayloadError, match="makeModel"):
    await _run(_handler(inference, InMemoryProductsRepo()), {"selectedCategories": ["engine"]})
  assert inference.calls == []


@pytest.mark.anyio
async def test_structurally_invalid_equipment_fails() -> None:
  inference = FakeInference(json.dumps({"equipment": "none"}))
  with pytest.raises(ModelOutputError):
    await _run(_handler(inference, InMemoryProductsRepo()), PAYLOAD)
