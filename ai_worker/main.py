from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from ai_worker.api.routes import jobs, tasks
from ai_worker.config import get_settings
from ai_worker.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from ai_worker.core.lifespan import lifespan
from ai_worker.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="AI Job Worker", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

if settings.allowed_origins:
  app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok"}


app.include_router(jobs.router, prefix="/v1/jobs")
app.include_router(tasks.router, prefix="/internal")
