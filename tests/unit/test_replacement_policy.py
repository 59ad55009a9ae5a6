from __future__ import annotations

from ai_worker.jobs.contracts import EquipmentItem
from ai_worker.jobs.replacement import apply_replacement_policy


def _item(name: str, category: str, likelihood: str = "low", reason: str | None = None, subcategory: str | None = None) -> EquipmentItem:
  return EquipmentItem(index=0, name=name, category=category, subcategory=subcategory, replacement_likelihood=likelihood, replacement_reason=reason)


def test_without_build_year_everything_is_low() -> None:
  items = [_item("Main Engine", "engine", "high", "Old engine")]
  apply_replacement_policy(items, year_built=None, current_year=2026)
  assert items[0].replacement_likelihood == "low"
  assert items[0].replacement_reason is None


def test_new_boats_are_always_low() -> None:
  items = [_item("House batteries", "electrical", "high", "Batteries wear out")]
  apply_replacement_policy(items, year_built=2023, current_year=2026)
  assert items[0].replacement_likelihood == "low"
  assert items[0].replacement_reason is None


def test_age_rules_escalate_with_reason() -> None:
  engine = _item("Main Engine", "engine")
  plotter = _item("Chartplotter", "navigation")
  keel = _item("Keel", "hull_deck")
  apply_replacement_policy([engine, plotter, keel], year_built=2000, current_year=2026)
  assert engine.replacement_likelihood == "high"
  assert "26 years old" in engine.replacement_reason
  assert plotter.replacement_likelihood == "high"
  assert keel.replacement_likelihood == "low"
  assert keel.replacement_reason is None


def test_rules_never_lower_the_model_estimate() -> None:
  autopilot = _item("Autopilot", "navigation", "high", "Original unit is obsolete")
  apply_replacement_policy([autopilot], year_built=2010, current_year=2026)
  assert autopilot.replacement_likelihood == "high"
  assert autopilot.replacement_reason == "Original unit is obsolete"


def test_rule_thresholds_are_exclusive() -> None:
  engine = _item("Main Engine", "engine")
  apply_replacement_policy([engine], year_built=2006, current_year=2026)
  assert engine.replacement_likelihood == "low"


def test_medium_items_always_carry_a_reason() -> None:
  winch = _item("Primary winch", "rigging", "medium")
  vhf = _item("VHF radio", "electronics")
  apply_replacement_policy([winch, vhf], year_built=2012, current_year=2026)
  assert winch.replacement_likelihood == "medium"
  assert winch.replacement_reason
  assert vhf.replacement_likelihood == "medium"
  assert vhf.replacement_reason
