"""Payload and result models shared by the generation handlers.

Wire names follow the camelCase keys that clients already store (for example
``parentIndex`` and ``replacementLikelihood``); the snake_case product fields
match the product registry columns.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ai_worker.storage.products_repo import ProductDetails

EquipmentCategory = Literal["engine", "rigging", "electrical", "navigation", "safety", "plumbing", "anchoring", "hull_deck", "electronics", "galley", "comfort", "dinghy"]
ReplacementLikelihood = Literal["low", "medium", "high"]
TaskCategory = Literal["routine", "seasonal", "repair", "inspection", "safety"]
TaskPriority = Literal["low", "medium", "high", "critical"]
LinkRegion = Literal["eu", "us", "uk", "asia", "global"]
WaypointDensity = Literal["minimal", "moderate", "detailed"]
RiskLevel = Literal["Coastal sailing", "Offshore sailing", "Extreme sailing"]

EQUIPMENT_CATEGORIES: tuple[str, ...] = ("engine", "rigging", "electrical", "navigation", "safety", "plumbing", "anchoring", "hull_deck", "electronics", "galley", "comfort", "dinghy")
DEFAULT_EQUIPMENT_CATEGORY = "hull_deck"
REPLACEMENT_LIKELIHOODS: tuple[str, ...] = ("low", "medium", "high")
TASK_CATEGORIES: tuple[str, ...] = ("routine", "seasonal", "repair", "inspection", "safety")
TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
LINK_REGIONS: tuple[str, ...] = ("eu", "us", "uk", "asia", "global")
RISK_LEVELS: tuple[str, ...] = ("Coastal sailing", "Offshore sailing", "Extreme sailing")

CATEGORY_DESCRIPTIONS: dict[str, str] = {
  "engine": "Engine & Propulsion (main engine, fuel system, cooling, gearbox, propeller, alternator, exhaust)",
  "rigging": "Rigging & Sails (mast, boom, standing rigging, running rigging, winches, sails, furlers)",
  "electrical": "Electrical (batteries, solar panels, wind generator, shore power, inverter, charger)",
  "navigation": "Navigation (GPS, chartplotter, radar, AIS, compass, autopilot, instruments)",
  "safety": "Safety (life raft, life jackets, EPIRB, flares, fire extinguishers, jacklines)",
  "plumbing": "Plumbing (freshwater system, watermaker, bilge pumps, heads, holding tank)",
  "anchoring": "Anchoring (anchors, chain, windlass)",
  "hull_deck": "Hull & Deck (hull, keel, rudder, hatches, ports, deck)",
  "electronics": "Electronics & Communication (VHF radio, SSB, satellite phone, WiFi)",
  "galley": "Galley (stove, oven, refrigeration, storage)",
  "comfort": "Comfort (heating, ventilation, lighting, cushions)",
  "dinghy": "Dinghy & Tender (dinghy, outboard motor, davits)",
}


class _WireModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DocumentationLink(_WireModel):
  title: str
  url: str


class SparePartsLink(_WireModel):
  region: LinkRegion = "global"
  title: str
  url: str


class EquipmentItem(_WireModel):
  """One piece of equipment discovered for a boat."""

  index: int
  name: str
  category: EquipmentCategory
  subcategory: str | None = None
  parent_index: int | None = Field(default=None, alias="parentIndex")
  manufacturer: str | None = None
  model: str | None = None
  notes: str | None = None
  description: str | None = None
  specs: dict[str, Any] | None = None
  manufacturer_url: str | None = None
  documentation_links: list[DocumentationLink] | None = None
  spare_parts_links: list[SparePartsLink] | None = None
  replacement_likelihood: ReplacementLikelihood = Field(default="low", alias="replacementLikelihood")
  replacement_reason: str | None = Field(default=None, alias="replacementReason")
  product_registry_id: str | None = Field(default=None, alias="productRegistryId")

  @property
  def has_product(self) -> bool:
    return bool(self.manufacturer and self.model)

  def product_details(self) -> ProductDetails | None:
    """Registry metadata for this item, or None without manufacturer and model."""
    if not self.manufacturer or not self.model:
      return None
    return ProductDetails(
      manufacturer=self.manufacturer,
      model=self.model,
      category=self.category,
      subcategory=self.subcategory,
      description=self.description,
      specs=dict(self.specs or {}),
      manufacturer_url=self.manufacturer_url,
      documentation_links=[link.model_dump() for link in self.documentation_links or []],
      spare_parts_links=[link.model_dump() for link in self.spare_parts_links or []],
    )

  def to_wire(self) -> dict[str, Any]:
    return self.model_dump(by_alias=True)


class Recurrence(_WireModel):
  type: Literal["time", "usage"] = "time"
  interval_days: int | None = None
  engine_hours: int | None = None

  def to_wire(self) -> dict[str, Any]:
    return self.model_dump(exclude_none=True)


DEFAULT_RECURRENCE = Recurrence(type="time", interval_days=365)


class MaintenanceTask(_WireModel):
  """One maintenance task, either generated or served from the cache."""

  equipment_index: int | None = Field(default=None, alias="equipmentIndex")
  title: str
  description: str | None = None
  category: TaskCategory = "routine"
  priority: TaskPriority = "medium"
  recurrence: Recurrence = Field(default_factory=lambda: DEFAULT_RECURRENCE.model_copy())
  estimated_hours: float | None = None

  def to_wire(self, *, include_equipment_index: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if include_equipment_index:
      payload["equipmentIndex"] = self.equipment_index
    payload.update({"title": self.title, "description": self.description, "category": self.category, "priority": self.priority, "recurrence": self.recurrence.to_wire(), "estimated_hours": self.estimated_hours})
    return payload


class BoatEquipmentPayload(_WireModel):
  """Payload of ``generate-boat-equipment`` jobs."""

  make_model: str = Field(alias="makeModel", min_length=1)
  boat_id: str | None = Field(default=None, alias="boatId")
  boat_type: str | None = Field(default=None, alias="boatType")
  loa_m: float | None = Field(default=None, gt=0)
  year_built: int | None = Field(default=None, alias="yearBuilt", ge=1800, le=2200)
  selected_categories: list[EquipmentCategory] = Field(alias="selectedCategories", min_length=1)
  maintenance_categories: list[EquipmentCategory] = Field(default_factory=list, alias="maintenanceCategories")

  @property
  def requested_maintenance_categories(self) -> list[str]:
    """Categories that get maintenance tasks; defaults to the equipment categories."""
    return list(self.maintenance_categories or self.selected_categories)


class EquipmentMaintenancePayload(_WireModel):
  """Payload of ``generate-equipment-maintenance`` jobs."""

  equipment_name: str = Field(alias="equipmentName", min_length=1)
  category: str
  boat_make_model: str = Field(alias="boatMakeModel", min_length=1)
  boat_id: str | None = Field(default=None, alias="boatId")
  equipment_id: str | None = Field(default=None, alias="equipmentId")
  subcategory: str | None = None
  manufacturer: str | None = None
  model: str | None = None
  year_installed: int | None = Field(default=None, alias="yearInstalled")
  product_registry_id: str | None = Field(default=None, alias="productRegistryId")


class WaypointInput(_WireModel):
  name: str = Field(min_length=1)
  lat: float = Field(ge=-90, le=90)
  lng: float = Field(ge=-180, le=180)


class JourneyPayload(_WireModel):
  """Payload of ``generate-journey`` jobs."""

  start_location: WaypointInput = Field(alias="startLocation")
  end_location: WaypointInput = Field(alias="endLocation")
  intermediate_waypoints: list[WaypointInput] = Field(default_factory=list, alias="intermediateWaypoints")
  boat_id: str | None = Field(default=None, alias="boatId")
  start_date: str | None = Field(default=None, alias="startDate")
  end_date: str | None = Field(default=None, alias="endDate")
  use_speed_planning: bool = Field(default=False, alias="useSpeedPlanning")
  boat_speed: float | None = Field(default=None, alias="boatSpeed", gt=0)
  waypoint_density: WaypointDensity = Field(default="moderate", alias="waypointDensity")

  @property
  def all_waypoints(self) -> list[WaypointInput]:
    return [self.start_location, *self.intermediate_waypoints, self.end_location]
