"""Postgres-backed repository for asynchronous jobs using SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ai_worker.core.database import require_session_factory
from ai_worker.jobs.models import JobRecord, ProgressEventRecord
from ai_worker.schema.jobs import AsyncJob, AsyncJobProgress
from ai_worker.storage.jobs_repo import JobsRepository
from ai_worker.utils.ids import generate_job_id


def _now() -> datetime:
  return datetime.now(UTC)


class PostgresJobsRepository(JobsRepository):
  """Persist jobs and progress events through SQLAlchemy sessions."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or require_session_factory()

  async def create_job(self, job_type: str, payload: dict[str, Any], *, job_id: str | None = None) -> JobRecord:
    async with self._session_factory() as session:
      row = AsyncJob(id=job_id or generate_job_id(), job_type=job_type, payload=payload, status="pending", created_at=_now())
      session.add(row)
      await session.commit()
      return self._model_to_record(row)

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(AsyncJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def mark_running(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      stmt = update(AsyncJob).where(AsyncJob.id == job_id, AsyncJob.status == "pending").values(status="running", started_at=_now())
      result = await session.execute(stmt)
      await session.commit()
      if result.rowcount != 1:
        return None
      row = await session.get(AsyncJob, job_id)
      return self._model_to_record(row) if row is not None else None

  async def mark_completed(self, job_id: str, result: dict[str, Any]) -> bool:
    return await self._finish(job_id, status="completed", result=result, error=None)

  async def mark_failed(self, job_id: str, error: str) -> bool:
    return await self._finish(job_id, status="failed", result=None, error=error)

  async def _finish(self, job_id: str, *, status: str, result: dict[str, Any] | None, error: str | None) -> bool:
    async with self._session_factory() as session:
      stmt = update(AsyncJob).where(AsyncJob.id == job_id, AsyncJob.status == "running").values(status=status, result=result, error=error, completed_at=_now())
      outcome = await session.execute(stmt)
      await session.commit()
      return outcome.rowcount == 1

  async def append_progress(self, job_id: str, *, step_label: str, percent: int | None = None, ai_message: str | None = None, is_final: bool = False) -> ProgressEventRecord:
    async with self._session_factory() as session:
      row = AsyncJobProgress(job_id=job_id, step_label=step_label, percent=percent, ai_message=ai_message, is_final=is_final, created_at=_now())
      session.add(row)
      await session.commit()
      return self._event_to_record(row)

  async def list_progress(self, job_id: str, *, after_id: int | None = None, limit: int = 200) -> list[ProgressEventRecord]:
    async with self._session_factory() as session:
      stmt = select(AsyncJobProgress).where(AsyncJobProgress.job_id == job_id)
      if after_id is not None:
        stmt = stmt.where(AsyncJobProgress.id > after_id)
      stmt = stmt.order_by(AsyncJobProgress.id.asc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._event_to_record(row) for row in rows]

  def _model_to_record(self, row: AsyncJob) -> JobRecord:
    return JobRecord(
      job_id=row.id,
      job_type=row.job_type,
      payload=dict(row.payload or {}),
      status=row.status,  # type: ignore[arg-type]
      result=row.result,
      error=row.error,
      created_at=row.created_at,
      started_at=row.started_at,
      completed_at=row.completed_at,
    )

  def _event_to_record(self, row: AsyncJobProgress) -> ProgressEventRecord:
    return ProgressEventRecord(id=row.id, job_id=row.job_id, step_label=row.step_label, percent=row.percent, ai_message=row.ai_message, is_final=row.is_final, created_at=row.created_at)
