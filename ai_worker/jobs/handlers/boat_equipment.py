"""Two-phase equipment discovery and maintenance generation for a boat."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from ai_worker.ai.json_parser import parse_model_object
from ai_worker.ai.prompt_builder import build_equipment_prompt, build_maintenance_batch_prompt, equipment_research_system_prompt, maintenance_system_prompt
from ai_worker.ai.providers.base import CallOptions, InferenceClient, WebSearchOptions
from ai_worker.jobs.contracts import BoatEquipmentPayload, EquipmentItem, MaintenanceTask
from ai_worker.jobs.handlers.common import RAW_PREVIEW_CHARS, cached_to_task, current_year, task_to_cached, validate_payload
from ai_worker.jobs.parsing import coerce_equipment, coerce_maintenance_tasks
from ai_worker.jobs.progress import JobProgressContext
from ai_worker.jobs.replacement import apply_replacement_policy
from ai_worker.storage.products_repo import CachedMaintenanceTask, ProductDetails, ProductsRepository

JOB_TYPE = "generate-boat-equipment"

EQUIPMENT_MAX_TOKENS = 12000
MAINTENANCE_MAX_TOKENS = 8000

logger = logging.getLogger(__name__)


class BoatEquipmentHandler:
  """Discover a boat's equipment, link it to the product registry and attach maintenance tasks.

  Phase 1 researches the equipment list with web search. Products that carry
  a manufacturer and model are resolved to canonical registry rows so tasks
  cached by earlier jobs can be reused. Phase 2 only asks the model for
  equipment that still has no cached tasks.
  """

  def __init__(
    self,
    inference: InferenceClient,
    products_repo: ProductsRepository,
    *,
    research_model: str | None = None,
    generation_model: str | None = None,
    web_search_max_results: int = 8,
    clock: Callable[[], int] = current_year,
  ) -> None:
    self._inference = inference
    self._products_repo = products_repo
    self._research_model = research_model
    self._generation_model = generation_model
    self._web_search_max_results = web_search_max_results
    self._clock = clock

  async def run(self, job_id: str, payload: dict[str, Any], ctx: JobProgressContext) -> dict[str, Any]:
    request = validate_payload(BoatEquipmentPayload, payload)
    year = self._clock()

    prompt = build_equipment_prompt(request, current_year=year, search_results=self._web_search_max_results)
    await ctx.emit_progress(job_id, "Researching boat equipment", 10)

    options = CallOptions(
      model=self._research_model,
      system_prompt=equipment_research_system_prompt(),
      temperature=0.1,
      max_tokens=EQUIPMENT_MAX_TOKENS,
      web_search=WebSearchOptions(max_results=self._web_search_max_results),
    )
    await ctx.emit_progress(job_id, "Searching manufacturer sources", 20)
    response = await self._inference.call(prompt, options)

    equipment = coerce_equipment(parse_model_object(response.content))
    apply_replacement_policy(equipment, year_built=request.year_built, current_year=year)
    await ctx.emit_progress(job_id, f"Found {len(equipment)} equipment items", 50, detail=response.content[:RAW_PREVIEW_CHARS])

    await self._link_products(equipment)
    linked = sum(1 for item in equipment if item.product_registry_id)
    await ctx.emit_progress(job_id, f"Linked {linked} products to the registry", 55)

    categories = request.requested_maintenance_categories
    wanted = [item for item in equipment if item.category in categories]
    product_ids = {item.product_registry_id for item in wanted if item.product_registry_id}
    cached_by_product: dict[str, list[CachedMaintenanceTask]] = defaultdict(list)
    if product_ids:
      for cached in await self._products_repo.list_tasks(product_ids):
        cached_by_product[cached.product_registry_id].append(cached)

    needs_generation = [item for item in wanted if not item.product_registry_id or not cached_by_product.get(item.product_registry_id)]
    await ctx.emit_progress(job_id, f"Reusing cached tasks for {len(wanted) - len(needs_generation)} items", 60)

    generated: list[MaintenanceTask] = []
    if needs_generation:
      await ctx.emit_progress(job_id, f"Generating maintenance tasks for {len(needs_generation)} items", 70)
      generated = await self._generate_tasks(request, needs_generation, categories)
    else:
      await ctx.emit_progress(job_id, "All maintenance tasks served from cache", 70)

    await self._cache_generated_tasks(equipment, generated)
    await ctx.emit_progress(job_id, "Saved maintenance tasks", 85)

    pending_indexes = {item.index for item in needs_generation}
    tasks: list[MaintenanceTask] = []
    for item in wanted:
      if item.index in pending_indexes:
        continue
      tasks.extend(cached_to_task(cached, equipment_index=item.index) for cached in cached_by_product[item.product_registry_id])
    tasks.extend(generated)

    await ctx.emit_progress(job_id, "Equipment & maintenance ready", 100, is_final=True)
    return {
      "boatId": request.boat_id,
      "equipment": [item.to_wire() for item in equipment],
      "maintenanceTasks": [task.to_wire() for task in tasks],
    }

  async def _link_products(self, equipment: list[EquipmentItem]) -> None:
    """Resolve canonical registry ids and enrich rows that are missing data."""
    details_by_key: dict[tuple[str, str], ProductDetails] = {}
    for item in equipment:
      details = item.product_details()
      if details is None:
        continue
      # Items sharing a product contribute whichever fields the first one left empty.
      existing = details_by_key.get(details.key)
      details_by_key[details.key] = existing.merged_with(details) if existing else details
    if not details_by_key:
      return

    try:
      await self._products_repo.insert_missing(list(details_by_key.values()))
    except Exception:  # noqa: BLE001
      logger.warning("Product registry insert failed; continuing with existing rows", exc_info=True)

    # The refetch is authoritative: concurrent jobs may have inserted the same keys.
    records = await self._products_repo.find_by_manufacturers({manufacturer for manufacturer, _ in details_by_key})
    records_by_key = {record.key: record for record in records}

    for item in equipment:
      details = item.product_details()
      record = records_by_key.get(details.key) if details is not None else None
      if record is not None:
        item.product_registry_id = record.id

    for key, details in details_by_key.items():
      record = records_by_key.get(key)
      if record is None or not record.empty_fields():
        continue
      try:
        written = await self._products_repo.fill_missing_fields(record.id, details)
      except Exception:  # noqa: BLE001
        logger.warning("Product registry enrichment failed product_id=%s", record.id, exc_info=True)
        continue
      if written:
        logger.info("Enriched product %s fields=%s", record.id, sorted(written))

  async def _generate_tasks(self, request: BoatEquipmentPayload, items: list[EquipmentItem], categories: list[str]) -> list[MaintenanceTask]:
    prompt = build_maintenance_batch_prompt(items, make_model=request.make_model, categories=categories)
    options = CallOptions(model=self._generation_model, system_prompt=maintenance_system_prompt(), temperature=0.1, max_tokens=MAINTENANCE_MAX_TOKENS)
    response = await self._inference.call(prompt, options)
    tasks = coerce_maintenance_tasks(parse_model_object(response.content))

    # Tasks may only reference equipment that was sent for generation.
    allowed = {item.index for item in items}
    kept = [task for task in tasks if task.equipment_index is None or task.equipment_index in allowed]
    if len(kept) != len(tasks):
      logger.warning("Dropped %d maintenance tasks for equipment outside the request", len(tasks) - len(kept))
    return kept

  async def _cache_generated_tasks(self, equipment: list[EquipmentItem], tasks: list[MaintenanceTask]) -> None:
    product_by_index = {item.index: item.product_registry_id for item in equipment if item.product_registry_id}
    rows = [task_to_cached(task, product_registry_id=product_by_index[task.equipment_index]) for task in tasks if task.equipment_index in product_by_index]
    if not rows:
      return
    try:
      inserted = await self._products_repo.insert_tasks(rows)
      logger.info("Cached %d maintenance tasks", inserted)
    except Exception:  # noqa: BLE001
      logger.warning("Maintenance task cache write failed", exc_info=True)
