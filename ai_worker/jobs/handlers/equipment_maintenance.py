"""Maintenance schedule for a single piece of equipment, served from the cache when possible."""

from __future__ import annotations

import logging
from typing import Any

from ai_worker.ai.json_parser import parse_model_object
from ai_worker.ai.prompt_builder import build_single_maintenance_prompt, maintenance_system_prompt
from ai_worker.ai.providers.base import CallOptions, InferenceClient
from ai_worker.jobs.contracts import EquipmentMaintenancePayload
from ai_worker.jobs.handlers.common import cached_to_task, task_to_cached, validate_payload
from ai_worker.jobs.parsing import coerce_maintenance_tasks
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.storage.products_repo import ProductsRepository

JOB_TYPE = "generate-equipment-maintenance"

MAX_TOKENS = 4000

logger = logging.getLogger(__name__)


class EquipmentMaintenanceHandler:
  def __init__(self, inference: InferenceClient, products_repo: ProductsRepository, *, generation_model: str | None = None) -> None:
    self._inference = inference
    self._products_repo = products_repo
    self._generation_model = generation_model

  async def run(self, job_id: str, payload: dict[str, Any], ctx: JobProgressContext) -> dict[str, Any]:
    request = validate_payload(EquipmentMaintenancePayload, payload)
    product_id = request.product_registry_id

    if product_id:
      await ctx.emit_progress(job_id, "Checking maintenance task cache", 15)
      cached = await self._products_repo.list_tasks([product_id])
      if cached:
        logger.info("Serving %d cached maintenance tasks product_id=%s", len(cached), product_id)
        await ctx.emit_progress(job_id, "Found cached maintenance tasks", 100, is_final=True)
        return {"maintenanceTasks": [cached_to_task(row, equipment_index=None).to_wire(include_equipment_index=False) for row in cached]}

    await ctx.emit_progress(job_id, "Generating maintenance tasks", 25)
    options = CallOptions(model=self._generation_model, system_prompt=maintenance_system_prompt(), temperature=0.1, max_tokens=MAX_TOKENS)
    response = await self._inference.call(build_single_maintenance_prompt(request), options)

    await ctx.emit_progress(job_id, "Processing results", 85)
    tasks = coerce_maintenance_tasks(parse_model_object(response.content))

    if product_id and tasks:
      try:
        await self._products_repo.insert_tasks([task_to_cached(task, product_registry_id=product_id) for task in tasks])
      except Exception:  # noqa: BLE001
        logger.warning("Maintenance task cache write failed product_id=%s", product_id, exc_info=True)

    await ctx.emit_progress(job_id, "Maintenance tasks ready", 100, is_final=True)
    return {"maintenanceTasks": [task.to_wire(include_equipment_index=False) for task in tasks]}
