"""
Problem+JSON (RFC 7807) responses for the ``/api`` surface.

Every error leaving the JSON API carries the same envelope: ``type``,
``title``, ``status``, ``detail``, ``instance``, a stable snake_case ``code``
and the request correlation id. Structured extras (validation messages,
failing cart lines, a redirect hint) ride along under ``details``.

The checkout blueprints answer in their own ``{success, error, redirect}``
shape; see :mod:`storefront.api.errors`.
"""

from __future__ import annotations

import logging
import traceback
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from storefront.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

_STATUS_CODES = {
    HTTPStatus.BAD_REQUEST: "bad_request",
    HTTPStatus.UNAUTHORIZED: "unauthorized",
    HTTPStatus.FORBIDDEN: "forbidden",
    HTTPStatus.NOT_FOUND: "not_found",
    HTTPStatus.METHOD_NOT_ALLOWED: "method_not_allowed",
    HTTPStatus.CONFLICT: "conflict",
    HTTPStatus.REQUEST_ENTITY_TOO_LARGE: "payload_too_large",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "unsupported_media_type",
    HTTPStatus.UNPROCESSABLE_ENTITY: "unprocessable_entity",
    HTTPStatus.TOO_MANY_REQUESTS: "too_many_requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "internal_server_error",
    HTTPStatus.BAD_GATEWAY: "upstream_error",
    HTTPStatus.SERVICE_UNAVAILABLE: "service_unavailable",
}


def code_for_status(status: int) -> str:
    return _STATUS_CODES.get(status, "error")


def problem_body(
    status: int,
    code: str,
    detail: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the problem document for the current request."""
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": detail,
        "instance": request.path if request else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        body["details"] = details
    return body


def problem_response(body: dict[str, Any]) -> tuple[Response, int]:
    resp = jsonify(body)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, body["status"]


class APIError(Exception):
    """
    An error a view can raise to answer with a problem document.

    :param message: Client-safe text, rendered as ``detail``.
    :param status_code: HTTP status, ``400`` unless stated.
    :param code: Stable machine-readable identifier.
    :param details: Optional structured payload rendered under ``details``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem_body(self.status_code, self.code, self.message, self.details or None)


class NotFound(APIError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class Conflict(APIError):
    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class Unauthorized(APIError):
    """Missing or rejected credentials. Views add ``details.redirect``."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


class UpstreamFailure(APIError):
    """The payment provider could not be reached. The text stays generic."""

    def __init__(self, message: str = "Payment service is unavailable. Please try again.") -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_GATEWAY, code="upstream_error")


# Infrastructure failures never expose their text to clients.
_OPAQUE_FAILURES: tuple[tuple[type[Exception], HTTPStatus, str], ...] = (
    (IntegrityError, HTTPStatus.CONFLICT, "Resource conflict"),
    (OperationalError, HTTPStatus.SERVICE_UNAVAILABLE, "Service temporarily unavailable"),
)


def _request_fields() -> dict[str, Any]:
    if not request:
        return {}
    return {"method": request.method, "path": request.path}


def _report(status: int, code: str, detail: str, *, exc_info: Any = None) -> None:
    emit = log.error if status >= 500 else log.warning
    emit(
        "api.error code=%s status=%s detail=%s",
        code,
        status,
        detail,
        exc_info=exc_info,
        extra=_request_fields(),
    )


def _render(err: APIError) -> tuple[Response, int]:
    _report(err.status_code, err.code, err.message)
    return problem_response(err.to_problem())


def init_app(app: Flask) -> None:
    """Install the problem+json handlers on ``app``."""
    from storefront.services._shared.base import BaseService
    from storefront.services._shared.errors import ServiceError

    translator = BaseService()

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return _render(err)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        return _render(translator.translate_exceptions(err))

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        return _render(
            APIError(
                "Validation failed",
                code="validation_error",
                details={"errors": err.normalized_messages()},
            )
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = code_for_status(status)
        if status == HTTPStatus.NOT_FOUND:
            detail = f"Route '{request.path}' not found"
        else:
            detail = (err.description or code.replace("_", " ").capitalize()).strip()
        return _render(APIError(detail, status_code=status, code=code))

    for exc_type, status, detail in _OPAQUE_FAILURES:
        app.register_error_handler(exc_type, _opaque_handler(status, detail))

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        status = HTTPStatus.INTERNAL_SERVER_ERROR
        body = problem_body(status, code_for_status(status), "Unexpected error")
        if app.debug:
            body["traceback"] = traceback.format_exception(err)
        _report(status, body["code"], "Unexpected error", exc_info=err)
        return problem_response(body)


def _opaque_handler(status: HTTPStatus, detail: str):
    def handler(err: Exception):
        code = code_for_status(status)
        _report(status, code, detail, exc_info=err)
        return problem_response(problem_body(status, code, detail))

    return handler
