"""Age-based replacement likelihood policy for discovered equipment."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ai_worker.jobs.contracts import EquipmentItem

NEW_BOAT_AGE_YEARS = 5
_RANK = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True)
class ReplacementRule:
  """Equipment matching ``keywords`` (and ``categories`` when set) older than ``min_age`` gets ``likelihood``."""

  label: str
  keywords: tuple[str, ...]
  min_age: int
  likelihood: str
  categories: frozenset[str] | None = None

  def matches(self, item: EquipmentItem) -> bool:
    if self.categories is not None and item.category not in self.categories:
      return False
    haystack = " ".join(part for part in (item.name, item.subcategory or "") if part).lower().replace("_", " ")
    return any(keyword in haystack for keyword in self.keywords)


REPLACEMENT_RULES: tuple[ReplacementRule, ...] = (
  ReplacementRule("Outboard motors", ("outboard",), 15, "high"),
  ReplacementRule("Engines", ("engine", "inboard", "diesel"), 20, "high", frozenset({"engine"})),
  ReplacementRule("Chartplotters and electronics", ("chartplotter", "plotter", "radar", "instrument", "gps", "display", "ais"), 12, "high", frozenset({"navigation", "electronics"})),
  ReplacementRule("Batteries", ("battery", "batteries"), 6, "high"),
  ReplacementRule("Watermakers", ("watermaker", "water maker", "desalinator"), 8, "high"),
  ReplacementRule("Sails", ("sail", "genoa", "jib", "spinnaker", "gennaker"), 12, "high", frozenset({"rigging"})),
  ReplacementRule("Standing rigging", ("standing rigging", "shroud", "forestay", "backstay"), 10, "high", frozenset({"rigging"})),
  ReplacementRule("Dinghy outboards", ("outboard",), 10, "medium", frozenset({"dinghy"})),
  ReplacementRule("Running rigging", ("running rigging", "halyard", "sheet"), 8, "medium", frozenset({"rigging"})),
  ReplacementRule("Autopilots", ("autopilot", "auto pilot"), 8, "medium"),
  ReplacementRule("Refrigeration", ("refrigerat", "fridge", "freezer"), 8, "medium"),
  ReplacementRule("VHF radios", ("vhf",), 8, "medium"),
)


def _strongest_rule(item: EquipmentItem, boat_age: int) -> ReplacementRule | None:
  best: ReplacementRule | None = None
  for rule in REPLACEMENT_RULES:
    if boat_age <= rule.min_age or not rule.matches(item):
      continue
    if best is None or _RANK[rule.likelihood] > _RANK[best.likelihood]:
      best = rule
  return best


def apply_replacement_policy(items: Iterable[EquipmentItem], *, year_built: int | None, current_year: int) -> None:
  """Normalise replacement likelihood in place.

  Without a build year, or for boats younger than five years, every item is
  ``low`` with no reason. Otherwise a matching age rule raises the model's
  estimate (never lowers it), and every ``medium``/``high`` item carries a
  reason.
  """
  boat_age = current_year - year_built if year_built is not None else None
  for item in items:
    if boat_age is None or boat_age < NEW_BOAT_AGE_YEARS:
      item.replacement_likelihood = "low"
      item.replacement_reason = None
      continue

    rule = _strongest_rule(item, boat_age)
    if rule is not None and _RANK[rule.likelihood] > _RANK[item.replacement_likelihood]:
      item.replacement_likelihood = rule.likelihood  # type: ignore[assignment]
      item.replacement_reason = f"{rule.label} are commonly replaced after {rule.min_age} years; this boat is {boat_age} years old."

    if item.replacement_likelihood == "low":
      item.replacement_reason = None
    elif not item.replacement_reason:
      item.replacement_reason = f"Equipment of this type is often replaced on a {boat_age}-year-old boat."
