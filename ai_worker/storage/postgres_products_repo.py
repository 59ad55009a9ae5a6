"""SQLAlchemy-backed product registry and maintenance task cache."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ai_worker.core.database import require_session_factory
from ai_worker.schema.products import ProductMaintenanceTask, ProductRegistry
from ai_worker.storage.products_repo import DESCRIPTIVE_FIELDS, CachedMaintenanceTask, ProductDetails, ProductRecord, ProductsRepository
from ai_worker.utils.ids import generate_row_id

logger = logging.getLogger(__name__)


def _insert_ignoring_conflicts(session: AsyncSession, model: type, rows: list[dict[str, Any]], index_elements: list[str]):
  """Build an INSERT .. ON CONFLICT DO NOTHING for the session's dialect."""
  dialect = session.get_bind().dialect.name
  if dialect == "postgresql":
    stmt = pg_insert(model)
  elif dialect == "sqlite":
    stmt = sqlite_insert(model)
  else:
    raise RuntimeError(f"Insert-ignore is not supported for dialect '{dialect}'.")
  return stmt.values(rows).on_conflict_do_nothing(index_elements=index_elements)


class PostgresProductsRepository(ProductsRepository):
  """Persist registry products and cached tasks with insert-ignore semantics."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or require_session_factory()

  async def insert_missing(self, products: Sequence[ProductDetails]) -> None:
    unique: dict[tuple[str, str], ProductDetails] = {}
    for product in products:
      existing = unique.get(product.key)
      unique[product.key] = existing.merged_with(product) if existing else product
    if not unique:
      return

    rows = [
      {
        "id": generate_row_id(),
        "category": product.category,
        "subcategory": product.subcategory,
        "manufacturer": product.manufacturer,
        "model": product.model,
        "description": product.description,
        "specs": dict(product.specs),
        "manufacturer_url": product.manufacturer_url,
        "documentation_links": list(product.documentation_links),
        "spare_parts_links": list(product.spare_parts_links),
        "is_verified": False,
      }
      for product in unique.values()
    ]
    async with self._session_factory() as session:
      await session.execute(_insert_ignoring_conflicts(session, ProductRegistry, rows, ["manufacturer", "model"]))
      await session.commit()

  async def find_by_manufacturers(self, manufacturers: Iterable[str]) -> list[ProductRecord]:
    names = sorted(set(manufacturers))
    if not names:
      return []
    async with self._session_factory() as session:
      stmt = select(ProductRegistry).where(ProductRegistry.manufacturer.in_(names))
      rows = (await session.execute(stmt)).scalars().all()
      return [self._product_to_record(row) for row in rows]

  async def fill_missing_fields(self, product_id: str, details: ProductDetails) -> set[str]:
    async with self._session_factory() as session:
      row = await session.get(ProductRegistry, product_id)
      if row is None:
        return set()

      written: set[str] = set()
      for name in DESCRIPTIVE_FIELDS:
        current = getattr(row, name)
        incoming = getattr(details, name)
        # Only empty columns are written; populated data from earlier jobs wins.
        if current or not incoming:
          continue
        setattr(row, name, incoming)
        written.add(name)

      if written:
        await session.commit()
        logger.debug("Enriched product %s fields=%s", product_id, sorted(written))
      return written

  async def list_tasks(self, product_ids: Iterable[str]) -> list[CachedMaintenanceTask]:
    ids = sorted(set(product_ids))
    if not ids:
      return []
    async with self._session_factory() as session:
      stmt = select(ProductMaintenanceTask).where(ProductMaintenanceTask.product_registry_id.in_(ids)).order_by(ProductMaintenanceTask.created_at.asc(), ProductMaintenanceTask.title.asc())
      rows = (await session.execute(stmt)).scalars().all()
      return [self._task_to_record(row) for row in rows]

  async def insert_tasks(self, tasks: Sequence[CachedMaintenanceTask]) -> int:
    rows: list[dict[str, Any]] = []
    seen: set[tuple[str, str]] = set()
    for task in tasks:
      key = (task.product_registry_id, task.title)
      if key in seen:
        continue
      seen.add(key)
      rows.append(
        {
          "id": task.id or generate_row_id(),
          "product_registry_id": task.product_registry_id,
          "title": task.title,
          "description": task.description,
          "category": task.category,
          "priority": task.priority,
          "recurrence": dict(task.recurrence),
          "estimated_hours": task.estimated_hours,
          "source": task.source,
        }
      )
    if not rows:
      return 0

    async with self._session_factory() as session:
      result = await session.execute(_insert_ignoring_conflicts(session, ProductMaintenanceTask, rows, ["product_registry_id", "title"]))
      await session.commit()
      return max(result.rowcount or 0, 0)

  def _product_to_record(self, row: ProductRegistry) -> ProductRecord:
    return ProductRecord(
      id=row.id,
      manufacturer=row.manufacturer,
      model=row.model,
      category=row.category,
      subcategory=row.subcategory,
      description=row.description,
      specs=dict(row.specs or {}),
      manufacturer_url=row.manufacturer_url,
      documentation_links=list(row.documentation_links or []),
      spare_parts_links=list(row.spare_parts_links or []),
      is_verified=bool(row.is_verified),
    )

  def _task_to_record(self, row: ProductMaintenanceTask) -> CachedMaintenanceTask:
    return CachedMaintenanceTask(
      id=row.id,
      product_registry_id=row.product_registry_id,
      title=row.title,
      description=row.description,
      category=row.category,
      priority=row.priority,
      recurrence=dict(row.recurrence or {}),
      estimated_hours=row.estimated_hours,
      source=row.source,
    )
