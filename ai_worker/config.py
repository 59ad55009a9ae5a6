"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from ai_worker.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_SUPPORTED_AI_PROVIDERS = {"openrouter", "gemini"}
_SUPPORTED_TASK_PROVIDERS = {"local-http", "gcp"}
_DEFAULT_MODELS = {"openrouter": ("openrouter/auto", "openai/gpt-4o-mini"), "gemini": ("gemini-2.5-flash", "gemini-2.5-flash")}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the AI job worker."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  auto_apply_migrations: bool
  task_secret: str | None
  task_service_provider: str
  cloud_tasks_queue_path: str | None
  cloud_tasks_service_account: str | None
  base_url: str | None
  jobs_auto_process: bool
  job_timeout_seconds: float | None
  ai_provider: str
  openrouter_api_key: str | None
  openrouter_base_url: str
  gemini_api_key: str | None
  research_model: str
  generation_model: str
  web_search_max_results: int
  ai_retry_delays: tuple[float, ...]


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or not raw.strip():
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ()

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
  if "*" in origins:
    raise ValueError("AI_WORKER_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_delays(raw: str | None) -> tuple[float, ...]:
  """Parse a comma separated list of retry delays in seconds."""

  if raw is None or not raw.strip():
    return (5.0, 20.0, 50.0)

  try:
    delays = tuple(float(part) for part in raw.split(",") if part.strip())
  except ValueError as exc:
    raise ValueError("AI_WORKER_AI_RETRY_DELAYS must be a comma separated list of numbers.") from exc

  if any(delay < 0 for delay in delays):
    raise ValueError("AI_WORKER_AI_RETRY_DELAYS must not contain negative delays.")

  return delays


def _parse_timeout(raw: str | None) -> float | None:
  """Parse the job execution timeout; zero disables it."""

  if raw is None or not raw.strip():
    return 900.0

  timeout = float(raw)
  if timeout < 0:
    raise ValueError("AI_WORKER_JOB_TIMEOUT_SECONDS must be zero or a positive number.")

  return timeout or None


def _database_dsn() -> str | None:
  return _optional_str(os.getenv("AI_WORKER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("AI_WORKER_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("AI_WORKER_DEBUG"))

  log_max_bytes = int(os.getenv("AI_WORKER_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("AI_WORKER_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("AI_WORKER_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("AI_WORKER_LOG_BACKUP_COUNT must be zero or a positive integer.")

  pg_connect_timeout = int(os.getenv("AI_WORKER_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("AI_WORKER_PG_CONNECT_TIMEOUT must be a positive integer.")

  task_service_provider = (os.getenv("AI_WORKER_TASK_SERVICE_PROVIDER") or "local-http").strip().lower()
  if task_service_provider not in _SUPPORTED_TASK_PROVIDERS:
    raise ValueError(f"AI_WORKER_TASK_SERVICE_PROVIDER must be one of {sorted(_SUPPORTED_TASK_PROVIDERS)}.")

  ai_provider = (os.getenv("AI_WORKER_AI_PROVIDER") or "openrouter").strip().lower()
  if ai_provider not in _SUPPORTED_AI_PROVIDERS:
    raise ValueError(f"AI_WORKER_AI_PROVIDER must be one of {sorted(_SUPPORTED_AI_PROVIDERS)}.")

  default_research_model, default_generation_model = _DEFAULT_MODELS[ai_provider]

  web_search_max_results = int(os.getenv("AI_WORKER_WEB_SEARCH_MAX_RESULTS", "8"))
  if web_search_max_results <= 0:
    raise ValueError("AI_WORKER_WEB_SEARCH_MAX_RESULTS must be a positive integer.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("AI_WORKER_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("AI_WORKER_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("AI_WORKER_LOG_HTTP_4XX")),
    pg_dsn=_database_dsn(),
    pg_connect_timeout=pg_connect_timeout,
    auto_apply_migrations=_parse_bool(os.getenv("AI_WORKER_AUTO_APPLY_MIGRATIONS")),
    task_secret=_optional_str(os.getenv("AI_WORKER_TASK_SECRET")),
    task_service_provider=task_service_provider,
    cloud_tasks_queue_path=_optional_str(os.getenv("AI_WORKER_CLOUD_TASKS_QUEUE_PATH")),
    cloud_tasks_service_account=_optional_str(os.getenv("AI_WORKER_CLOUD_TASKS_SERVICE_ACCOUNT")),
    base_url=_optional_str(os.getenv("AI_WORKER_BASE_URL")),
    jobs_auto_process=_parse_bool(os.getenv("AI_WORKER_JOBS_AUTO_PROCESS"), default=True),
    job_timeout_seconds=_parse_timeout(os.getenv("AI_WORKER_JOB_TIMEOUT_SECONDS")),
    ai_provider=ai_provider,
    openrouter_api_key=_optional_str(os.getenv("OPENROUTER_API_KEY")),
    openrouter_base_url=(os.getenv("AI_WORKER_OPENROUTER_BASE_URL") or "https://openrouter.ai/api/v1").strip(),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    research_model=_optional_str(os.getenv("AI_WORKER_RESEARCH_MODEL")) or default_research_model,
    generation_model=_optional_str(os.getenv("AI_WORKER_GENERATION_MODEL")) or default_generation_model,
    web_search_max_results=web_search_max_results,
    ai_retry_delays=_parse_delays(os.getenv("AI_WORKER_AI_RETRY_DELAYS")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the full web configuration."""

  return DatabaseSettings(debug=_parse_bool(os.getenv("AI_WORKER_DEBUG")), pg_dsn=_database_dsn(), pg_connect_timeout=int(os.getenv("AI_WORKER_PG_CONNECT_TIMEOUT", "5")))
