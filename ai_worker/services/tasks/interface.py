from __future__ import annotations

from typing import Protocol


class TaskEnqueuer(Protocol):
  """Interface for triggering job dispatch out of band."""

  async def enqueue(self, job_id: str) -> None:
    """Ask the dispatch endpoint to run a pending job."""
    ...
