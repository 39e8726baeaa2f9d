import pytest
from storefront.core import errors as api_errors
from storefront.services._shared.base import BaseService
from storefront.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IntegrityViolationError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)


@pytest.mark.parametrize(
    "exc, status, code",
    [
        (NotFoundError("Address", 4, message="Address not found."), 404, "not_found"),
        (ConflictError("Address", "Only one default address is allowed."), 409, "conflict"),
        (AuthenticationError(), 401, "unauthorized"),
        (AuthorizationError(), 403, "forbidden"),
        (UpstreamError(), 502, "upstream_error"),
        (ValidationError("Invalid addressId."), 400, "bad_request"),
    ],
)
def test_service_errors_map_to_http_status(exc, status, code):
    translated = BaseService().translate_exceptions(exc)

    assert isinstance(translated, api_errors.APIError)
    assert translated.status_code == status
    assert translated.code == code
    assert translated.message == str(exc)


def test_integrity_violation_lists_every_line():
    exc = IntegrityViolationError(errors=["Only 2 left of Kettle.", "Mug is unavailable."])

    translated = BaseService().translate_exceptions(exc)

    assert translated.status_code == 400
    assert translated.code == "integrity_violation"
    assert translated.details == {"errors": ["Only 2 left of Kettle.", "Mug is unavailable."]}


def test_foreign_exceptions_pass_through():
    exc = KeyError("x")

    assert BaseService().translate_exceptions(exc) is exc
