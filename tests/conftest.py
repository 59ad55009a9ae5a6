"""Shared fixtures for the worker test-suite."""

from __future__ import annotations

import os

# Settings are cached on first import, so the environment is pinned before any app module loads.
os.environ.setdefault("AI_WORKER_TASK_SECRET", "test-task-secret")
os.environ.setdefault("AI_WORKER_JOBS_AUTO_PROCESS", "0")
os.environ.setdefault("AI_WORKER_JOB_TIMEOUT_SECONDS", "0")
os.environ.pop("AI_WORKER_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import ai_worker.schema  # noqa: E402, F401
from ai_worker.core.database import Base  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
async def session_factory(anyio_backend, tmp_path):
  """File-backed sqlite database with the full schema."""
  engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}")
  async with engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  await engine.dispose()
