from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ai_worker.core.database import Base, JsonDocument


class AsyncJob(Base):
  __tablename__ = "async_jobs"
  __table_args__ = (Index("ix_async_jobs_status_created_at", "status", "created_at"),)

  id: Mapped[str] = mapped_column(String(64), primary_key=True)
  job_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
  status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending")
  result: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AsyncJobProgress(Base):
  __tablename__ = "async_job_progress"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  job_id: Mapped[str] = mapped_column(ForeignKey("async_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
  step_label: Mapped[str] = mapped_column(String(255), nullable=False)
  percent: Mapped[int | None] = mapped_column(Integer, nullable=True)
  ai_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
