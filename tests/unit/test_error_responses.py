"""Unit tests for RFC7807 error mapping."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.api.exception_handlers import register_exception_handlers
from app.crosscutting.error_responses import (
    PROBLEM_JSON_MEDIA_TYPE,
    ErrorCode,
    ErrorDetail,
    internal_error,
    validation_error,
)
from app.crosscutting.exceptions import (
    ConflictError,
    DatabaseError,
    MailDeliveryError,
    NotFoundError,
    RegistrationFailedError,
    TokenExpiredError,
    UnauthorizedError,
)

pytestmark = pytest.mark.unit


class TestErrorFactories:
    """Test error factory functions."""

    def test_validation_error(self):
        exc = validation_error("Invalid input", [{"field": "name", "msg": "required"}])
        assert exc.status_code == 422
        assert exc.code == ErrorCode.VALIDATION_ERROR
        assert exc.errors == [{"field": "name", "msg": "required"}]

    def test_internal_error_attaches_request_id(self):
        exc = internal_error(request_id="req-1")
        assert exc.status_code == 500
        assert exc.errors == [{"request_id": "req-1"}]

    def test_internal_error(self):
        exc = internal_error()
        assert exc.status_code == 500
        assert exc.code == ErrorCode.INTERNAL_ERROR


class TestErrorDetail:
    """Test ErrorDetail model."""

    def test_serialization(self):
        detail = ErrorDetail(
            title="Not Found",
            status=404,
            detail="Resource not found",
            code=ErrorCode.NOT_FOUND,
        )
        data = detail.model_dump(exclude_none=True)
        assert data["status"] == 404
        assert data["code"] == "NOT_FOUND"
        assert "errors" not in data


class _Body(BaseModel):
    email: str


def _app_raising(exc: Exception) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise exc

    @app.post("/echo")
    def echo(body: _Body):
        return body

    return TestClient(app, raise_server_exceptions=False)


class TestAppErrorMapping:
    @pytest.mark.parametrize(
        "exc,status,code",
        [
            (ConflictError("Email already exists"), 409, "CONFLICT"),
            (NotFoundError("User not found"), 404, "NOT_FOUND"),
            (TokenExpiredError("Verification token has expired"), 400, "TOKEN_EXPIRED"),
            (RegistrationFailedError("Registration failed"), 500, "REGISTRATION_FAILED"),
            (MailDeliveryError("Could not send email"), 502, "MAIL_DELIVERY_ERROR"),
            (DatabaseError("pool exhausted"), 503, "DATABASE_ERROR"),
        ],
    )
    def test_status_and_code(self, exc, status, code):
        response = _app_raising(exc).get("/boom")

        assert response.status_code == status
        assert response.headers["content-type"].startswith(PROBLEM_JSON_MEDIA_TYPE)
        body = response.json()
        assert body["code"] == code
        assert body["detail"] == exc.message
        assert body["errors"][0]["error_id"] == exc.error_id

    def test_unauthorized_carries_challenge_header(self):
        response = _app_raising(UnauthorizedError("Invalid token")).get("/boom")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_validation_errors_list_fields(self):
        response = _app_raising(RuntimeError()).post("/echo", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(err.get("field") == "body.email" for err in body["errors"])

    def test_unhandled_exception_is_generic_500(self):
        response = _app_raising(RuntimeError("secret internals")).get("/boom")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
