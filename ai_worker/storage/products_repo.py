"""Storage interfaces for the shared product registry and maintenance task cache."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

# Fields that later discoveries may fill in when the registry row has none.
DESCRIPTIVE_FIELDS = ("subcategory", "description", "specs", "manufacturer_url", "documentation_links", "spare_parts_links")


@dataclass(frozen=True)
class ProductDetails:
  """Descriptive product metadata gathered during equipment discovery."""

  manufacturer: str
  model: str
  category: str
  subcategory: str | None = None
  description: str | None = None
  specs: dict[str, Any] = field(default_factory=dict)
  manufacturer_url: str | None = None
  documentation_links: list[dict[str, str]] = field(default_factory=list)
  spare_parts_links: list[dict[str, str]] = field(default_factory=list)

  @property
  def key(self) -> tuple[str, str]:
    return (self.manufacturer, self.model)

  def merged_with(self, other: ProductDetails) -> ProductDetails:
    """Fill this product's empty descriptive fields from ``other``."""
    changes = {name: getattr(other, name) for name in DESCRIPTIVE_FIELDS if not getattr(self, name) and getattr(other, name)}
    return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class ProductRecord:
  """Canonical registry row."""

  id: str
  manufacturer: str
  model: str
  category: str
  subcategory: str | None
  description: str | None
  specs: dict[str, Any]
  manufacturer_url: str | None
  documentation_links: list[dict[str, str]]
  spare_parts_links: list[dict[str, str]]
  is_verified: bool = False

  @property
  def key(self) -> tuple[str, str]:
    return (self.manufacturer, self.model)

  def empty_fields(self) -> set[str]:
    """Return descriptive fields that hold no data yet."""
    candidates = {"description": self.description, "specs": self.specs, "manufacturer_url": self.manufacturer_url, "documentation_links": self.documentation_links, "spare_parts_links": self.spare_parts_links}
    return {name for name, value in candidates.items() if not value}


@dataclass(frozen=True)
class CachedMaintenanceTask:
  """Maintenance task stored against a registry product."""

  product_registry_id: str
  title: str
  description: str | None
  category: str
  priority: str
  recurrence: dict[str, Any]
  estimated_hours: float | None
  source: str = "ai"
  id: str | None = None


class ProductsRepository(Protocol):
  """Repository contract for the shared content cache."""

  async def insert_missing(self, products: Sequence[ProductDetails]) -> None:
    """Insert products whose (manufacturer, model) key is not registered yet."""

  async def find_by_manufacturers(self, manufacturers: Iterable[str]) -> list[ProductRecord]:
    """Return every registry row for the given manufacturers."""

  async def fill_missing_fields(self, product_id: str, details: ProductDetails) -> set[str]:
    """Write descriptive fields that are still empty; return the fields written."""

  async def list_tasks(self, product_ids: Iterable[str]) -> list[CachedMaintenanceTask]:
    """Return cached maintenance tasks for the given registry ids."""

  async def insert_tasks(self, tasks: Sequence[CachedMaintenanceTask]) -> int:
    """Cache maintenance tasks, ignoring (product, title) pairs already stored."""
