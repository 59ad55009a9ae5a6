"""Lenient JSON extraction for model outputs.

Models wrap JSON in markdown fences, surround it with prose, leave trailing
commas or stop mid-document when they hit the token budget. Parsing tries, in
order: fenced block content, the slice between the first ``{`` and the last
``}``, then the raw trimmed text; each candidate is parsed strictly, then with
small repairs, and finally by salvaging the longest complete prefix of a
truncated document.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_OPEN_FENCE_RE = re.compile(r"^\s*```(?:json)?[^\n]*\n?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)")
_MAX_SALVAGE_ATTEMPTS = 200


class ModelOutputError(ValueError):
  """Raised when a model response holds no recoverable JSON document."""

  def __init__(self, message: str, raw: str = "") -> None:
    super().__init__(message)
    self.raw = raw


def extract_json_text(raw: str) -> str:
  """Return the most likely JSON candidate inside a model response."""
  match = _FENCE_RE.search(raw)
  if match:
    return match.group(1).strip()

  # An opening fence without its closing fence means the response was cut off.
  text = _OPEN_FENCE_RE.sub("", raw, count=1) if raw.lstrip().startswith("```") else raw

  start = text.find("{")
  end = text.rfind("}")
  if start != -1 and end > start:
    return text[start : end + 1].strip()

  return text.strip()


def _strip_trailing_commas(raw: str) -> str:
  return _TRAILING_COMMA_RE.sub(r"\1", raw)


def _quote_bare_keys(raw: str) -> str:
  return _BARE_KEY_RE.sub(r'\1"\2"\3', _strip_trailing_commas(raw))


def _closing_suffix(stack: list[str]) -> str:
  return "".join("}" if opener == "{" else "]" for opener in reversed(stack))


def _salvage_truncated(candidate: str) -> Any | None:
  """Cut a truncated document back to its last complete container and close it."""
  cut_points: list[tuple[int, str]] = []
  stack: list[str] = []
  in_string = False
  escape = False

  for index, char in enumerate(candidate):
    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      stack.append(char)
    elif char in "}]":
      if stack:
        stack.pop()
      cut_points.append((index, _closing_suffix(stack)))

  for index, suffix in reversed(cut_points[-_MAX_SALVAGE_ATTEMPTS:]):
    attempt = _strip_trailing_commas(candidate[: index + 1] + suffix)
    try:
      return json.loads(attempt)
    except json.JSONDecodeError:
      continue

  return None


def parse_model_json(raw: str | None) -> Any:
  """Parse the JSON document inside a model response or raise ModelOutputError."""
  if raw is None or not raw.strip():
    raise ModelOutputError("Model returned an empty response.", raw or "")

  candidate = extract_json_text(raw)
  for repair in (str, _strip_trailing_commas, _quote_bare_keys):
    try:
      return json.loads(repair(candidate))
    except json.JSONDecodeError:
      continue

  salvaged = _salvage_truncated(candidate)
  if salvaged is not None:
    logger.warning("Recovered truncated model JSON (%d chars)", len(candidate))
    return salvaged

  raise ModelOutputError("Model response did not contain valid JSON.", raw)


def parse_model_object(raw: str | None) -> dict[str, Any]:
  """Parse a model response that must be a JSON object."""
  parsed = parse_model_json(raw)
  if not isinstance(parsed, dict):
    raise ModelOutputError(f"Expected a JSON object from the model, got {type(parsed).__name__}.", raw or "")
  return parsed
