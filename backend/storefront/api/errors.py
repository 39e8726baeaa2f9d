"""Blueprint-scoped error handlers for the checkout JSON contract."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Blueprint, Response, jsonify
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from storefront.core.errors import APIError
from storefront.schemas.common import first_error
from storefront.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    IntegrityViolationError,
    ServiceError,
)

log = logging.getLogger(__name__)

CHECKOUT_URL = "/checkout"
LOGIN_URL = "/login"


def checkout_failure(
    message: str,
    *,
    status: int = HTTPStatus.BAD_REQUEST,
    redirect: str = CHECKOUT_URL,
    errors: list[str] | None = None,
) -> Response:
    """Build the ``{success:false, error, redirect}`` body checkout clients expect.

:param message: Human-readable error shown to the shopper.
:type message: str
:param status: HTTP status code to emit.
:type status: int
:param redirect: Page the client should return to.
:type redirect: str
:param errors: Per-line failures of a batched integrity check.
:type errors: list[str] | None
:returns: JSON response.
:rtype: flask.Response
"""

    payload: dict[str, Any] = {"success": False, "error": message, "redirect": redirect}
    if errors:
        payload["errors"] = errors
    response = jsonify(payload)
    response.status_code = int(status)
    return response


def register_checkout_handlers(bp: Blueprint, *, failure_message: str) -> None:
    """Attach checkout handlers to a blueprint.

Every failure answers ``{success:false, error, redirect}``. Login problems
point to ``/login``; everything else stays on ``/checkout``. Unexpected
errors answer 500 with ``failure_message`` and are logged with ``exc_info``.

:param bp: Blueprint receiving handlers.
:type bp: flask.Blueprint
:param failure_message: Text used for unexpected 500s.
:type failure_message: str
"""

    @bp.errorhandler(ServiceError)
    def _service_error(err: ServiceError) -> Response:
        if isinstance(err, AuthenticationError):
            return checkout_failure(str(err), status=HTTPStatus.UNAUTHORIZED, redirect=LOGIN_URL)
        if isinstance(err, AuthorizationError):
            return checkout_failure(str(err), status=HTTPStatus.FORBIDDEN)
        if isinstance(err, IntegrityViolationError):
            return checkout_failure(str(err), errors=list(err.errors))
        log.info("checkout.rejected", extra={"reason": str(err)})
        return checkout_failure(str(err))

    @bp.errorhandler(APIError)
    def _api_error(err: APIError) -> Response:
        if err.status_code == HTTPStatus.UNAUTHORIZED:
            return checkout_failure(err.message, status=err.status_code, redirect=LOGIN_URL)
        redirect = (err.details or {}).get("redirect") or CHECKOUT_URL
        return checkout_failure(err.message, status=err.status_code, redirect=redirect)

    @bp.errorhandler(SchemaValidationError)
    def _schema_error(err: SchemaValidationError) -> Response:
        return checkout_failure(first_error(err.messages, "Invalid request"))

    @bp.errorhandler(HTTPException)
    def _http_exception(err: HTTPException) -> Response:
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        return checkout_failure(err.description or HTTPStatus(status).phrase, status=status)

    @bp.errorhandler(Exception)
    def _unexpected(err: Exception) -> Response:
        log.error("checkout.unexpected_error", exc_info=err)
        return checkout_failure(failure_message, status=HTTPStatus.INTERNAL_SERVER_ERROR)
