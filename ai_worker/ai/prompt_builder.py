"""Prompt rendering for the generation handlers."""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

from ai_worker.jobs.contracts import CATEGORY_DESCRIPTIONS, EQUIPMENT_CATEGORIES, RISK_LEVELS, TASK_CATEGORIES, TASK_PRIORITIES, BoatEquipmentPayload, EquipmentItem, EquipmentMaintenancePayload, JourneyPayload

DEFAULT_BOAT_SPEED_KNOTS = 6.0

_DENSITY_INSTRUCTIONS = {
  "minimal": "MINIMAL. Each leg has exactly 2 waypoints: its start and end port.",
  "moderate": "MODERATE. Add up to 2 intermediate waypoints per leg, only for major routing decisions or crew exchange points.",
  "detailed": "DETAILED. Include navigation waypoints, at most 8 per leg.",
}


@lru_cache(maxsize=16)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).parent / "prompts" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers with rendered values."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


def _format_number(value: float) -> str:
  return f"{value:g}"


def equipment_research_system_prompt() -> str:
  return _load_prompt("equipment_research_system.md")


def maintenance_system_prompt() -> str:
  return _load_prompt("maintenance_system.md")


def _replacement_rules(year_built: int | None, boat_age: int | None) -> str:
  if year_built is None or boat_age is None:
    return 'No build year is known. Set "replacementLikelihood": "low" and "replacementReason": null for every item.'

  return "\n".join(
    [
      f"The boat was built in {year_built} ({boat_age} years old). For every item, estimate how likely it is to have been replaced since the boat was new.",
      '- "high": very commonly replaced at this age. Engines over 20 years, chartplotters and electronics over 12 years, batteries over 6 years, watermakers over 8 years, sails over 12 years, standing rigging over 10 years, outboard motors over 15 years.',
      '- "medium": sometimes replaced. Autopilots, refrigeration, VHF radios, running rigging after 8 years, dinghy outboards after 10 years.',
      '- "low": rarely replaced. Hull, keel, mast structure, winches, blocks, cleats, anchors, chain, portlights, hatches.',
      'Boats younger than 5 years: every item is "low".',
      'Give a one-sentence "replacementReason" for "high" and "medium"; use null for "low".',
    ]
  )


def build_equipment_prompt(payload: BoatEquipmentPayload, *, current_year: int, search_results: int) -> str:
  """Render the equipment discovery prompt."""
  boat_age = current_year - payload.year_built if payload.year_built is not None else None
  description_parts = [payload.make_model]
  if payload.boat_type:
    description_parts.append(f"type: {payload.boat_type}")
  if payload.loa_m:
    description_parts.append(f"LOA: {_format_number(payload.loa_m)}m")
  if payload.year_built is not None:
    description_parts.append(f"built: {payload.year_built} ({boat_age} years old)")

  category_list = "\n".join(f"- {CATEGORY_DESCRIPTIONS.get(category, category)}" for category in payload.selected_categories)
  return _replace_placeholders(
    _load_prompt("equipment_discovery.md"),
    {
      "BOAT_DESCRIPTION": ", ".join(description_parts),
      "MAKE_MODEL": payload.make_model,
      "SEARCH_RESULTS": str(search_results),
      "CATEGORY_VALUES": ", ".join(EQUIPMENT_CATEGORIES),
      "REPLACEMENT_RULES": _replacement_rules(payload.year_built, boat_age),
      "CATEGORY_LIST": category_list,
    },
  )


def _describe_equipment(item: EquipmentItem) -> str:
  product = ""
  if item.manufacturer:
    product = f" ({item.manufacturer}{' ' + item.model if item.model else ''})"
  return f"  {item.index}: {item.name}{product} [{item.category}]"


def build_maintenance_batch_prompt(items: Iterable[EquipmentItem], *, make_model: str, categories: Iterable[str]) -> str:
  """Render the maintenance prompt for the equipment that still needs tasks."""
  return _replace_placeholders(
    _load_prompt("maintenance_batch.md"),
    {
      "MAKE_MODEL": make_model,
      "EQUIPMENT_LIST": "\n".join(_describe_equipment(item) for item in items),
      "MAINTENANCE_CATEGORIES": ", ".join(categories),
      "TASK_CATEGORIES": ", ".join(TASK_CATEGORIES),
      "TASK_PRIORITIES": ", ".join(TASK_PRIORITIES),
    },
  )


def build_single_maintenance_prompt(payload: EquipmentMaintenancePayload) -> str:
  """Render the maintenance prompt for one piece of equipment."""
  parts = [f"{payload.manufacturer} {payload.model}" if payload.manufacturer and payload.model else payload.equipment_name]
  if payload.subcategory:
    parts.append(f"({payload.subcategory})")
  if payload.year_installed:
    parts.append(f"installed {payload.year_installed}")

  return _replace_placeholders(
    _load_prompt("maintenance_single.md"),
    {
      "EQUIPMENT_DESCRIPTION": " ".join(parts),
      "CATEGORY": payload.category,
      "BOAT_MAKE_MODEL": payload.boat_make_model,
      "TASK_CATEGORIES": ", ".join(TASK_CATEGORIES),
      "TASK_PRIORITIES": ", ".join(TASK_PRIORITIES),
    },
  )


def resolve_boat_speed(payload: JourneyPayload) -> float | None:
  """Return the planning speed; dated journeys default to 6 knots."""
  if payload.boat_speed is not None:
    return payload.boat_speed
  if payload.start_date and payload.end_date:
    return DEFAULT_BOAT_SPEED_KNOTS
  return None


def build_journey_prompt(payload: JourneyPayload) -> str:
  """Render the route planning prompt."""
  waypoints = payload.all_waypoints
  speed = resolve_boat_speed(payload)
  with_dates = bool(payload.use_speed_planning and speed and payload.start_date and payload.end_date)

  waypoints_block = ""
  if len(waypoints) > 2:
    lines = []
    for position, waypoint in enumerate(waypoints):
      label = "START" if position == 0 else "END" if position == len(waypoints) - 1 else f"WAYPOINT {position}"
      lines.append(f"  {label}: {waypoint.name} ({waypoint.lat}, {waypoint.lng})")
    waypoints_block = "\n\nWaypoints (in order):\n" + "\n".join(lines)

  dates = ""
  if payload.start_date or payload.end_date:
    dates = "\nJourney dates:" + (f" start {payload.start_date}" if payload.start_date else "") + (f" end {payload.end_date}" if payload.end_date else "")

  speed_block = ""
  if with_dates:
    speed_block = "\n".join(
      [
        "",
        "",
        "SPEED-BASED PLANNING:",
        f"- Average cruising speed is {_format_number(speed)} knots.",
        f"- The journey starts on {payload.start_date} and must end by {payload.end_date}.",
        "- Derive leg dates from distance and speed at 70-80% efficiency.",
        "- Leg dates are sequential and stay inside the journey dates.",
      ]
    )

  if len(waypoints) > 2:
    route_rule = "Visit every waypoint in this order: " + " -> ".join(waypoint.name for waypoint in waypoints)
  else:
    route_rule = "Each leg forms a sensible sailing route."

  return _replace_placeholders(
    _load_prompt("journey.md"),
    {
      "WAYPOINTS_BLOCK": waypoints_block,
      "START": f"{payload.start_location.name} (approximately {payload.start_location.lat}, {payload.start_location.lng})",
      "END": f"{payload.end_location.name} (approximately {payload.end_location.lat}, {payload.end_location.lng})",
      "DATES": dates,
      "SPEED_BLOCK": speed_block,
      "DENSITY": _DENSITY_INSTRUCTIONS[payload.waypoint_density],
      "ROUTE_RULE": route_rule,
      "RISK_LEVELS": ", ".join(f'"{level}"' for level in RISK_LEVELS),
      "LEG_DATE_FIELDS": '\n      "start_date": "YYYY-MM-DD",\n      "end_date": "YYYY-MM-DD",' if with_dates else "",
    },
  )
