"""
Tests for the logging middleware.
Covers sensitive-field masking, PII masking and request id propagation.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    is_sensitive_field,
    mask_headers,
    mask_sensitive_data,
)


class TestSensitiveFieldDetection:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("Password", True),
        ("new_password", True),
        ("access_token", True),
        ("client_secret", True),
        ("Authorization", True),
        ("cookie", True),
        ("email", False),
        ("first_name", False),
        ("job_id", False),
    ])
    def test_is_sensitive_field(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestDataMasking:
    """Test recursive masking of request data."""

    def test_masks_secret_fields(self):
        masked = mask_sensitive_data({"email": "x", "password": "hunter22"})
        assert masked["password"] == "[REDACTED]"

    def test_masks_contact_details_in_values(self):
        masked = mask_sensitive_data(
            {"notes": "Reach jane.doe@example.com or +1 555 123 4567"}
        )
        assert "jane.doe@example.com" not in masked["notes"]
        assert "[EMAIL]" in masked["notes"]
        assert "[PHONE]" in masked["notes"]

    def test_nested_structures(self):
        data = {"candidates": [{"profile": {"token": "abc", "skills": ["python"]}}]}
        masked = mask_sensitive_data(data)

        profile = masked["candidates"][0]["profile"]
        assert profile["token"] == "[REDACTED]"
        assert profile["skills"] == ["python"]

    def test_max_depth(self):
        data = {"a": {"b": {"c": "d"}}}
        assert mask_sensitive_data(data, max_depth=1)["a"]["b"] == "[MAX_DEPTH_EXCEEDED]"

    def test_non_string_values_untouched(self):
        assert mask_sensitive_data({"experience": 5, "active": True}) == {
            "experience": 5,
            "active": True,
        }

    def test_mask_headers_keeps_scheme(self):
        masked = mask_headers(
            {"authorization": "Bearer abc.def.ghi", "content-type": "application/json"}
        )
        assert masked["authorization"] == "Bearer [REDACTED]"
        assert masked["content-type"] == "application/json"


class TestStructuredFormatter:
    """Log records become single-line JSON."""

    def test_format(self):
        record = logging.LogRecord(
            "recruitment", logging.INFO, __file__, 1, "Job %s posted", (7,), None
        )
        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "recruitment"
        assert data["message"] == "Job 7 posted"

    def test_format_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "recruitment", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad"


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware, log_request_body=True)

    @app.post("/echo")
    async def echo(request: Request):
        return {"request_id": request.state.request_id}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return TestClient(app)


class TestStructuredLoggingMiddleware:
    """Request/response logging."""

    def test_request_id_generated(self, client):
        response = client.post("/echo", json={"a": 1})

        assert response.status_code == 200
        assert response.headers["x-request-id"] == response.json()["request_id"]

    def test_request_id_propagated(self, client):
        response = client.post("/echo", json={}, headers={"x-request-id": "req-123"})

        assert response.headers["x-request-id"] == "req-123"
        assert response.json()["request_id"] == "req-123"

    def test_logs_masked_body(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            client.post("/echo", json={"email": "a@b.co", "password": "hunter22"})

        started = [
            json.loads(r.getMessage())
            for r in caplog.records
            if '"request_started"' in r.getMessage()
        ]
        assert started
        assert started[0]["body"]["password"] == "[REDACTED]"
        assert "hunter22" not in caplog.text

    def test_health_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = client.get("/health")

        assert response.status_code == 200
        assert "x-request-id" in response.headers
        assert "request_started" not in caplog.text
