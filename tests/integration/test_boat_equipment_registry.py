from __future__ import annotations

import asyncio
import json

import pytest

from ai_worker.jobs.handlers.boat_equipment import BoatEquipmentHandler
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.storage.postgres_products_repo import PostgresProductsRepository
from worker_fakes import FakeInference, InMemoryJobsRepo

PAYLOAD = {"makeModel": "Bavaria 37", "yearBuilt": 2010, "selectedCategories": ["engine"]}
EQUIPMENT = {"equipment": [{"index": 0, "name": "Main Engine", "category": "engine", "manufacturer": "Yanmar", "model": "3YM30", "description": "Three cylinder diesel"}]}
TASKS = {"maintenanceTasks": [{"equipmentIndex": 0, "title": "Change oil"}]}


async def _run_job(products: PostgresProductsRepository, job_id: str) -> dict:
  jobs = InMemoryJobsRepo()
  await jobs.create_job("generate-boat-equipment", PAYLOAD, job_id=job_id)
  inference = FakeInference(json.dumps(EQUIPMENT), json.dumps(TASKS))
  handler = BoatEquipmentHandler(inference, products, clock=lambda: 2026)
  return await handler.run(job_id, PAYLOAD, JobProgressContext(job_id=job_id, jobs_repo=jobs))


@pytest.mark.anyio
async def test_concurrent_jobs_share_one_registry_product(session_factory):
  products = PostgresProductsRepository(session_factory)

  first, second = await asyncio.gather(_run_job(products, "job-a"), _run_job(products, "job-b"))

  first_id = first["equipment"][0]["productRegistryId"]
  assert first_id is not None
  assert second["equipment"][0]["productRegistryId"] == first_id

  (record,) = await products.find_by_manufacturers(["Yanmar"])
  assert record.id == first_id
  assert record.description == "Three cylinder diesel"
  tasks = await products.list_tasks([first_id])
  assert [task.title for task in tasks] == ["Change oil"]
