"""Single-call sailing route generation."""

from __future__ import annotations

import logging
import math
from typing import Any

from ai_worker.ai.json_parser import parse_model_object
from ai_worker.ai.prompt_builder import build_journey_prompt
from ai_worker.ai.providers.base import CallOptions, InferenceClient
from ai_worker.jobs.contracts import RISK_LEVELS, JourneyPayload, WaypointInput
from ai_worker.jobs.handlers.common import RAW_PREVIEW_CHARS, validate_payload
from ai_worker.jobs.progress import JobProgressContext

JOB_TYPE = "generate-journey"

MAX_TOKENS = 20000
WAYPOINT_MATCH_RADIUS_KM = 30.0
EARTH_RADIUS_KM = 6371.0

logger = logging.getLogger(__name__)


class JourneyValidationError(ValueError):
  """Raised when the generated journey does not have a usable structure."""


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
  phi1, phi2 = math.radians(lat1), math.radians(lat2)
  d_phi = math.radians(lat2 - lat1)
  d_lambda = math.radians(lng2 - lng1)
  a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
  return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def _coordinates(waypoint: dict[str, Any]) -> tuple[float, float] | None:
  """Return ``(lng, lat)`` from a GeoJSON point, or None when malformed."""
  geocode = waypoint.get("geocode")
  if not isinstance(geocode, dict):
    return None
  coords = geocode.get("coordinates")
  if not isinstance(coords, list | tuple) or len(coords) < 2:
    return None
  lng, lat = coords[0], coords[1]
  if isinstance(lng, bool) or isinstance(lat, bool) or not isinstance(lng, int | float) or not isinstance(lat, int | float):
    return None
  if not (-180 <= lng <= 180 and -90 <= lat <= 90):
    return None
  return float(lng), float(lat)


def _sort_key(entry: tuple[int, dict[str, Any]]) -> tuple[int, int]:
  position, waypoint = entry
  index = waypoint.get("index")
  if isinstance(index, int) and not isinstance(index, bool):
    return (index, position)
  return (position, position)


def _normalise_leg(leg: Any, position: int) -> dict[str, Any]:
  if not isinstance(leg, dict):
    raise JourneyValidationError(f"Leg {position + 1} is not an object")

  name = leg.get("name") or f"Leg {position + 1}"
  raw_waypoints = leg.get("waypoints") if isinstance(leg.get("waypoints"), list) else []
  usable = [(i, wp) for i, wp in enumerate(raw_waypoints) if isinstance(wp, dict) and isinstance(wp.get("name"), str) and wp["name"].strip() and _coordinates(wp) is not None]
  if len(usable) < 2:
    raise JourneyValidationError(f'Leg "{name}" must have at least 2 waypoints')

  waypoints = [wp for _, wp in sorted(usable, key=_sort_key)]
  return {**leg, "name": name, "waypoints": waypoints}


def _matches(requested: WaypointInput, waypoint: dict[str, Any]) -> bool:
  wanted = requested.name.strip().lower()
  got = str(waypoint.get("name", "")).strip().lower()
  if wanted and got and (wanted in got or got in wanted):
    return True
  lng, lat = _coordinates(waypoint)  # type: ignore[misc]
  return haversine_km(requested.lat, requested.lng, lat, lng) <= WAYPOINT_MATCH_RADIUS_KM


def _check_route_visits(requested: list[WaypointInput], legs: list[dict[str, Any]]) -> None:
  """Every requested waypoint must appear along the legs, in order."""
  route = [waypoint for leg in legs for waypoint in leg["waypoints"]]
  cursor = 0
  for wanted in requested:
    while cursor < len(route) and not _matches(wanted, route[cursor]):
      cursor += 1
    if cursor == len(route):
      raise JourneyValidationError(f'Journey does not visit waypoint "{wanted.name}" in the requested order')
    # A route waypoint can satisfy only one requested waypoint.
    cursor += 1


def validate_journey(document: dict[str, Any], requested: list[WaypointInput]) -> dict[str, Any]:
  """Validate and normalise a generated journey document."""
  journey_name = document.get("journeyName")
  legs = document.get("legs")
  if not isinstance(journey_name, str) or not journey_name.strip() or not isinstance(legs, list) or not legs:
    raise JourneyValidationError("Invalid journey structure from AI")

  normalised = [_normalise_leg(leg, position) for position, leg in enumerate(legs)]
  _check_route_visits(requested, normalised)

  risk_level = document.get("riskLevel")
  return {**document, "riskLevel": risk_level if risk_level in RISK_LEVELS else None, "legs": normalised}


class JourneyHandler:
  def __init__(self, inference: InferenceClient, *, generation_model: str | None = None) -> None:
    self._inference = inference
    self._generation_model = generation_model

  async def run(self, job_id: str, payload: dict[str, Any], ctx: JobProgressContext) -> dict[str, Any]:
    request = validate_payload(JourneyPayload, payload)

    await ctx.emit_progress(job_id, "Planning route", 10)
    prompt = build_journey_prompt(request)

    await ctx.emit_progress(job_id, "Generating journey legs", 25)
    response = await self._inference.call(prompt, CallOptions(model=self._generation_model, temperature=0.5, max_tokens=MAX_TOKENS))

    await ctx.emit_progress(job_id, "Validating route", 70, detail=response.content[:RAW_PREVIEW_CHARS])
    journey = validate_journey(parse_model_object(response.content), request.all_waypoints)
    logger.info("Journey generated job_id=%s legs=%d", job_id, len(journey["legs"]))

    await ctx.emit_progress(job_id, "Journey plan ready", 100, is_final=True)
    return {"journey": journey}
