"""ORM models registered on the shared metadata."""

from .jobs import AsyncJob, AsyncJobProgress
from .products import ProductMaintenanceTask, ProductRegistry

__all__ = ["AsyncJob", "AsyncJobProgress", "ProductMaintenanceTask", "ProductRegistry"]
