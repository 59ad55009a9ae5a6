"""Unit tests for API error payload sanitization."""

from __future__ import annotations

from ai_worker.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  errors = [{"type": "value_error", "loc": ("body", "jobId"), "msg": "Value error, bad id", "input": {"jobId": 42}, "ctx": {"error": ValueError("bad id"), "input": 42}}]

  sanitized = _sanitize_validation_errors(errors)

  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "jobId"]
  assert sanitized[0]["ctx"] == {"error": "ValueError: bad id"}


def test_error_payload_includes_request_id_only_when_known() -> None:
  assert _error_payload("Not found", request_id="req-1") == {"detail": "Not found", "requestId": "req-1"}
  assert _error_payload("Not found") == {"detail": "Not found"}
