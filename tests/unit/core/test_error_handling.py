"""
Tests for error handling.
Covers message sanitization and the error envelope for every failure kind.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from core.exceptions import (
    AdminAlreadyExists,
    DuplicateEmail,
    Forbidden,
    InvalidFeedback,
    InvalidTransition,
    JobNotFound,
    OperationFailed,
)
from core.middleware.error_handling import sanitize_error_message, setup_error_handlers


class TestSensitiveDataSanitization:
    """Secrets never reach a client."""

    @pytest.mark.parametrize("sensitive_input", [
        'password="secret123"',
        'password_hash: abcdef',
        'token="Bearer abc123xyz"',
        'access_token:jwt.token.here',
        'secret="confidential"',
        'authorization: Bearer token123',
        "$2b$12$" + "a" * 53,
    ])
    def test_sensitive_values_redacted(self, sensitive_input):
        assert "[REDACTED]" in sanitize_error_message(sensitive_input)

    @pytest.mark.parametrize("safe_input", [
        'email="user@example.com"',
        "Job not found",
        "Cannot move application from selected to screening",
    ])
    def test_safe_values_untouched(self, safe_input):
        assert sanitize_error_message(safe_input) == safe_input

    def test_non_string_input(self):
        assert sanitize_error_message(404) == "404"


class Payload(BaseModel):
    count: int


@pytest.fixture
def client():
    """App with one route per failure kind."""
    app = FastAPI()
    setup_error_handlers(app)

    errors = {
        "duplicate": DuplicateEmail(),
        "admin": AdminAlreadyExists(),
        "forbidden": Forbidden(),
        "job": JobNotFound(job_id=3),
        "transition": InvalidTransition("Cannot complete an interview that is cancelled"),
        "feedback": InvalidFeedback("overall_rating must be between 1 and 5"),
        "failed": OperationFailed(),
        "leaky": DuplicateEmail('password="hunter22" already used'),
    }

    @app.get("/domain/{kind}")
    async def domain(kind: str):
        raise errors[kind]

    @app.get("/http")
    async def http():
        raise HTTPException(status_code=404, detail="Profile not found")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    @app.get("/db/{kind}")
    async def db(kind: str):
        if kind == "down":
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        raise SQLAlchemyError("boom")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("token=abc123 leaked")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorEnvelope:
    """Every failure has the same shape with a distinct code."""

    @pytest.mark.parametrize("kind,status_code,code", [
        ("duplicate", 409, "DUPLICATE_EMAIL"),
        ("admin", 409, "ADMIN_ALREADY_EXISTS"),
        ("forbidden", 403, "FORBIDDEN"),
        ("job", 404, "JOB_NOT_FOUND"),
        ("transition", 409, "INVALID_TRANSITION"),
        ("feedback", 422, "INVALID_FEEDBACK"),
        ("failed", 500, "OPERATION_FAILED"),
    ])
    def test_domain_errors(self, client, kind, status_code, code):
        response = client.get(f"/domain/{kind}")

        assert response.status_code == status_code
        error = response.json()["error"]
        assert error["code"] == code
        assert error["path"] == f"/domain/{kind}"
        assert error["method"] == "GET"
        assert error["message"]

    def test_domain_message_sanitized(self, client):
        response = client.get("/domain/leaky")
        assert "hunter22" not in response.json()["error"]["message"]

    def test_http_exception(self, client):
        response = client.get("/http")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_EXCEPTION"
        assert response.json()["error"]["message"] == "Profile not found"

    def test_validation_error(self, client):
        response = client.post("/validate", json={"count": "many"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.count"

    def test_database_unavailable(self, client):
        response = client.get("/db/down")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    def test_database_error(self, client):
        response = client.get("/db/other")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    def test_unhandled_exception_hides_details(self, client):
        response = client.get("/crash")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_SERVER_ERROR"
        assert "abc123" not in error["message"]
