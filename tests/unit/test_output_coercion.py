from __future__ import annotations

import pytest

from ai_worker.ai.json_parser import ModelOutputError
from ai_worker.jobs.parsing import coerce_equipment, coerce_maintenance_tasks, is_absolute_http_url


def test_equipment_must_be_an_array() -> None:
  with pytest.raises(ModelOutputError, match="equipment must be an array"):
    coerce_equipment({"equipment": {"name": "Engine"}})


def test_invalid_values_fall_back_to_defaults() -> None:
  items = coerce_equipment(
    {
      "equipment": [
        {"index": "zero", "name": "Mystery box", "category": "spaceship", "parentIndex": "root", "replacementLikelihood": "certain"},
      ]
    }
  )
  [item] = items
  assert item.index == 0
  assert item.category == "hull_deck"
  assert item.parent_index is None
  assert item.replacement_likelihood == "low"


def test_duplicate_indexes_are_renumbered() -> None:
  items = coerce_equipment({"equipment": [{"index": 0, "name": "Engine", "category": "engine"}, {"index": 0, "name": "Gearbox", "category": "engine"}]})
  assert [item.index for item in items] == [0, 1]


def test_parent_index_must_reference_another_item() -> None:
  items = coerce_equipment(
    {
      "equipment": [
        {"index": 0, "name": "Main Engine", "category": "engine"},
        {"index": 1, "name": "Raw water pump", "category": "engine", "parentIndex": 0},
        {"index": 2, "name": "Alternator", "category": "engine", "parentIndex": 2},
        {"index": 3, "name": "Impeller", "category": "engine", "parentIndex": 42},
      ]
    }
  )
  assert [item.parent_index for item in items] == [None, 0, None, None]


def test_product_metadata_requires_manufacturer_and_model() -> None:
  items = coerce_equipment(
    {
      "equipment": [
        {
          "index": 0,
          "name": "Main Engine",
          "category": "engine",
          "manufacturer": "Volvo Penta",
          "model": "D2-40",
          "description": "Four cylinder diesel",
          "specs": {"power": "40hp"},
          "manufacturer_url": "https://www.volvopenta.com/d2-40",
          "documentation_links": [{"title": "Manual", "url": "https://example.com/manual.pdf"}, {"title": "Broken", "url": "not a url"}],
          "spare_parts_links": [{"title": "Parts", "url": "https://parts.example.com", "region": "mars"}],
        },
        {"index": 1, "name": "Anchor", "category": "anchoring", "manufacturer": "Rocna", "description": "Should be dropped", "specs": {"weight": "20kg"}},
      ]
    }
  )
  engine, anchor = items
  assert engine.product_registry_id is None
  assert engine.specs == {"power": "40hp"}
  assert [link.url for link in engine.documentation_links] == ["https://example.com/manual.pdf"]
  assert engine.spare_parts_links[0].region == "global"
  assert anchor.description is None
  assert anchor.specs is None
  assert anchor.product_details() is None


@pytest.mark.parametrize(
  ("value", "expected"),
  [("https://example.com/a", True), ("http://example.com", True), ("ftp://example.com", False), ("/relative/path", False), ("https://exa mple.com", False), (None, False)],
)
def test_absolute_http_url(value: object, expected: bool) -> None:
  assert is_absolute_http_url(value) is expected


def test_maintenance_tasks_apply_enum_and_recurrence_defaults() -> None:
  tasks = coerce_maintenance_tasks(
    {
      "maintenanceTasks": [
        {"equipmentIndex": 0, "title": "Change oil", "category": "routine", "priority": "high", "recurrence": {"type": "usage", "engine_hours": 200}, "estimated_hours": 1.5},
        {"equipmentIndex": 1.0, "title": "Inspect", "category": "whenever", "priority": "urgent", "recurrence": {"type": "time"}},
        {"title": "Replace impeller", "recurrence": {"interval_days": 730}, "estimated_hours": -2},
        "not a task",
      ]
    }
  )
  assert len(tasks) == 3
  oil, inspect, impeller = tasks
  assert oil.recurrence.to_wire() == {"type": "usage", "engine_hours": 200}
  assert inspect.equipment_index == 1
  assert inspect.category == "routine"
  assert inspect.priority == "medium"
  assert inspect.recurrence.to_wire() == {"type": "time", "interval_days": 365}
  assert impeller.equipment_index is None
  assert impeller.recurrence.to_wire() == {"type": "time", "interval_days": 730}
  assert impeller.estimated_hours is None


def test_missing_task_array_yields_no_tasks() -> None:
  assert coerce_maintenance_tasks({"tasks": []}) == []
