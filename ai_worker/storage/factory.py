from ai_worker.config import Settings
from ai_worker.storage.jobs_repo import JobsRepository
from ai_worker.storage.postgres_jobs_repo import PostgresJobsRepository
from ai_worker.storage.postgres_products_repo import PostgresProductsRepository
from ai_worker.storage.products_repo import ProductsRepository


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""

  if not settings.pg_dsn:
    raise ValueError("AI_WORKER_PG_DSN must be set to enable Postgres persistence.")

  return PostgresJobsRepository()


def _get_products_repo(settings: Settings) -> ProductsRepository:
  """Return the active product registry repository."""

  if not settings.pg_dsn:
    raise ValueError("AI_WORKER_PG_DSN must be set to enable Postgres persistence.")

  return PostgresProductsRepository()
