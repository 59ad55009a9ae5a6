"""Concrete job handlers and the default registry wiring."""

from __future__ import annotations

from ai_worker.ai.providers.base import InferenceClient
from ai_worker.config import Settings
from ai_worker.jobs.dispatch import HandlerRegistry
from ai_worker.jobs.handlers import boat_equipment, equipment_maintenance, journey
from ai_worker.storage.products_repo import ProductsRepository

JOB_TYPES: tuple[str, ...] = (boat_equipment.JOB_TYPE, equipment_maintenance.JOB_TYPE, journey.JOB_TYPE)


def build_default_registry(settings: Settings, *, inference: InferenceClient, products_repo: ProductsRepository) -> HandlerRegistry:
  """Register every supported job type against shared collaborators."""
  return HandlerRegistry(
    {
      boat_equipment.JOB_TYPE: boat_equipment.BoatEquipmentHandler(
        inference,
        products_repo,
        research_model=settings.research_model,
        generation_model=settings.generation_model,
        web_search_max_results=settings.web_search_max_results,
      ),
      equipment_maintenance.JOB_TYPE: equipment_maintenance.EquipmentMaintenanceHandler(inference, products_repo, generation_model=settings.generation_model),
      journey.JOB_TYPE: journey.JourneyHandler(inference, generation_model=settings.generation_model),
    }
  )
