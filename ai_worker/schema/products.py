from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from ai_worker.core.database import Base, JsonDocument


class ProductRegistry(Base):
  """Shared catalogue of equipment products keyed by manufacturer and model."""

  __tablename__ = "product_registry"
  __table_args__ = (UniqueConstraint("manufacturer", "model", name="ux_product_registry_manufacturer_model"),)

  id: Mapped[str] = mapped_column(String(64), primary_key=True)
  category: Mapped[str] = mapped_column(String(64), nullable=False)
  subcategory: Mapped[str | None] = mapped_column(String(128), nullable=True)
  manufacturer: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
  model: Mapped[str] = mapped_column(String(255), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  specs: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False, default=dict)
  manufacturer_url: Mapped[str | None] = mapped_column(Text, nullable=True)
  documentation_links: Mapped[list[dict[str, Any]]] = mapped_column(JsonDocument, nullable=False, default=list)
  spare_parts_links: Mapped[list[dict[str, Any]]] = mapped_column(JsonDocument, nullable=False, default=list)
  is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class ProductMaintenanceTask(Base):
  """Maintenance task cached against a registry product."""

  __tablename__ = "product_maintenance_tasks"
  __table_args__ = (UniqueConstraint("product_registry_id", "title", name="ux_product_maintenance_tasks_product_title"),)

  id: Mapped[str] = mapped_column(String(64), primary_key=True)
  product_registry_id: Mapped[str] = mapped_column(ForeignKey("product_registry.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String(255), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  category: Mapped[str] = mapped_column(String(32), nullable=False)
  priority: Mapped[str] = mapped_column(String(16), nullable=False)
  recurrence: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
  estimated_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
  source: Mapped[str] = mapped_column(String(32), nullable=False, default="ai")
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
