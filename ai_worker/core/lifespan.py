import logging
import subprocess
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlparse

from fastapi import FastAPI

from ai_worker.config import get_settings
from ai_worker.core.database import dispose_db_engine
from ai_worker.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and optionally migrate the schema before serving requests."""
  settings = get_settings()
  logger = logging.getLogger("ai_worker.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete environment=%s provider=%s tasks=%s", settings.environment, settings.ai_provider, settings.task_service_provider)
    if settings.auto_apply_migrations:
      logger.info("Auto-apply migrations enabled; dsn=%s", _redact_dsn(settings.pg_dsn))
      repo_root = Path(__file__).resolve().parents[2]
      subprocess.run([sys.executable, "-m", "alembic", "upgrade", "head"], check=True, cwd=repo_root)
  except subprocess.CalledProcessError:
    logger.error("Migrations failed; refusing to start the service.", exc_info=True)
    raise
  except Exception:  # noqa: BLE001
    logger.warning("Startup initialization failed; continuing.", exc_info=True)

  yield

  await dispose_db_engine()
  logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host and database visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  return f"{parsed.scheme}://{netloc}" + (f"/{database}" if database else "")
