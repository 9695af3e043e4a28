"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from fastapi.testclient import TestClient

from reeljobs.core.exceptions import _sanitize_validation_errors
from reeljobs.main import create_app


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "input"), "msg": "Value error, script too long.", "input": {"text": "INT. SECRET SET - NIGHT"}, "ctx": {"error": ValueError("script too long."), "input": {"text": "INT. SECRET SET - NIGHT"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: script too long."
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body", "input"]


def test_validation_response_does_not_echo_the_request() -> None:
  client = TestClient(create_app())

  response = client.post("/v1/jobs", json={"kind": 42, "input": {"text": "INT. SECRET SET - NIGHT"}}, headers={"X-Owner-Id": "owner-1"})

  assert response.status_code == 422
  assert "SECRET SET" not in response.text
