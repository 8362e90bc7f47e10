"""
Tests for error handling middleware.
Covers the domain error taxonomy, database failures and message sanitization.
"""

import json

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError

from core.errors import (
    ApplicationNotFoundError,
    AssessmentAlreadySubmittedError,
    DocumentNotFoundError,
    GroundingViolationError,
    IncompletePhaseError,
    InsufficientContextError,
    InvalidQuizTransitionError,
    InvalidTransitionError,
    JobClosedError,
    MalformedAnswersError,
    ModelOutputError,
    NoQuestionsError,
    ScreeningError,
    UnsupportedFileError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    VectorStoreError,
)
from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    get_safe_error_details,
    sanitize_error_message,
    setup_error_handlers,
    status_for,
)


class TestSensitiveDataSanitization:
    """Secrets never reach an error response."""

    @pytest.mark.parametrize("sensitive_input", [
        'password="secret123"',
        'token="Bearer abc123xyz"',
        'api_key="AIzaSyXXXXXX"',
        'GOOGLE_API-KEY: AIzaSyXXXXXX',
        'client_secret:abc123',
        'authorization: Bearer token123',
        'SSN: 123-45-6789',
        'card: 4532123456789010',
    ])
    def test_sensitive_values_redacted(self, sensitive_input):
        assert "[REDACTED]" in sanitize_error_message(sensitive_input)

    @pytest.mark.parametrize("safe_input", [
        'username="john_doe"',
        'Application 42 not found',
        'count=12345',
    ])
    def test_safe_values_untouched(self, safe_input):
        assert sanitize_error_message(safe_input) == safe_input

    def test_multiple_secrets_in_one_message(self):
        message = "failed: password=hunter2 token=abc api_key=xyz"
        sanitized = sanitize_error_message(message)

        assert "hunter2" not in sanitized
        assert "abc" not in sanitized
        assert "xyz" not in sanitized
        assert sanitized.count("[REDACTED]") == 3

    def test_empty_string(self):
        assert sanitize_error_message("") == ""


class TestSafeErrorDetails:
    def test_basic_details(self):
        details = get_safe_error_details(ValueError("bad token=abc"))
        assert details["type"] == "ValueError"
        assert "abc" not in details["message"]
        assert "traceback" not in details

    def test_traceback_only_on_request(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            details = get_safe_error_details(exc, include_details=True)
        assert "RuntimeError" in details["traceback"]


class TestStatusMapping:
    @pytest.mark.parametrize("error,expected", [
        (AssessmentAlreadySubmittedError("x"), 409),
        (InvalidTransitionError("x"), 409),
        (InvalidQuizTransitionError("x"), 409),
        (UnsupportedFileError("x"), 400),
        (MalformedAnswersError("x"), 422),
        (NoQuestionsError("x"), 422),
        (IncompletePhaseError("x"), 422),
        (JobClosedError("x"), 422),
        (ApplicationNotFoundError("x"), 404),
        (DocumentNotFoundError("x"), 404),
        (UpstreamTimeoutError("x"), 504),
        (UpstreamUnavailableError("x"), 503),
        (VectorStoreError("x"), 503),
        (ModelOutputError("x"), 502),
        (GroundingViolationError("x"), 502),
        (InsufficientContextError("x"), 502),
        (ScreeningError("x"), 500),
    ])
    def test_status_for(self, error, expected):
        assert status_for(error) == expected


class Payload(BaseModel):
    count: int


class TestErrorHandlingMiddleware:
    """End-to-end error responses through a small app."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        setup_error_handlers(app)
        app.add_middleware(ErrorHandlingMiddleware, debug=False)

        @app.get("/success")
        async def success():
            return {"message": "success"}

        @app.get("/conflict")
        async def conflict():
            raise AssessmentAlreadySubmittedError(
                "Assessment already submitted", details={"current_status": "INTERVIEW"}
            )

        @app.get("/upstream-timeout")
        async def upstream_timeout():
            raise UpstreamTimeoutError("screening generation timed out after 30s")

        @app.get("/leaky")
        async def leaky():
            raise ModelOutputError("Model rejected api_key=AIzaSecret")

        @app.get("/http-error")
        async def http_error():
            raise HTTPException(status_code=401, detail="Unauthorized with token=abc123")

        @app.post("/validate")
        async def validate(payload: Payload):
            return payload

        @app.get("/database-integrity-error")
        async def db_integrity_error():
            raise IntegrityError("duplicate key", None, None)

        @app.get("/database-operational-error")
        async def db_operational_error():
            raise OperationalError("connection lost", None, None)

        @app.get("/timeout-error")
        async def timeout_err():
            raise TimeoutError("Request timed out")

        @app.get("/generic-error")
        async def generic_err():
            raise Exception("Unexpected error with api_key=secret")

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_successful_request(self, client):
        response = client.get("/success")
        assert response.status_code == 200
        assert response.json() == {"message": "success"}

    def test_domain_error_envelope(self, client):
        response = client.get("/conflict")

        assert response.status_code == 409
        assert response.json() == {
            "error": {
                "code": "ALREADY_SUBMITTED",
                "message": "Assessment already submitted",
                "path": "/conflict",
                "method": "GET",
                "details": {"current_status": "INTERVIEW"},
            }
        }

    def test_upstream_timeout(self, client):
        response = client.get("/upstream-timeout")
        assert response.status_code == 504
        assert response.json()["error"]["code"] == "UPSTREAM_TIMEOUT"
        assert "details" not in response.json()["error"]

    def test_domain_error_message_sanitized(self, client):
        response = client.get("/leaky")
        assert response.status_code == 502
        assert "AIzaSecret" not in json.dumps(response.json())

    def test_http_exception_handling(self, client):
        response = client.get("/http-error")
        assert response.status_code == 401
        data = response.json()
        assert data["error"]["code"] == "HTTP_EXCEPTION"
        assert "abc123" not in data["error"]["message"]

    def test_request_validation(self, client):
        response = client.post("/validate", json={"count": "many"})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.count"

    def test_database_integrity_error(self, client):
        response = client.get("/database-integrity-error")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INTEGRITY_ERROR"

    def test_database_operational_error(self, client):
        response = client.get("/database-operational-error")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    def test_timeout_error(self, client):
        response = client.get("/timeout-error")
        assert response.status_code == 504
        assert response.json()["error"]["code"] == "TIMEOUT"

    def test_generic_error_handling(self, client):
        response = client.get("/generic-error", headers={"x-request-id": "req-7"})
        assert response.status_code == 500

        data = response.json()
        assert data["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert data["error"]["message"] == "An unexpected error occurred"
        assert data["error"]["request_id"] == "req-7"
        assert "secret" not in json.dumps(data)

    def test_debug_mode_includes_details(self):
        app = FastAPI()
        app.add_middleware(ErrorHandlingMiddleware, debug=True)

        @app.get("/error")
        async def error():
            raise ValueError("Test error")

        response = TestClient(app).get("/error")
        assert response.status_code == 500
        assert response.json()["error"]["details"]["type"] == "ValueError"
