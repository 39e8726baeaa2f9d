"""Shared plumbing for the storefront application services."""

from __future__ import annotations

from dataclasses import dataclass

from storefront.core import errors as api_errors
from storefront.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IntegrityViolationError,
    NotFoundError,
    ServiceError,
    UpstreamError,
)
from storefront.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# First match wins, so subclasses must precede ServiceError.
_HTTP_TRANSLATIONS: tuple[tuple[type[ServiceError], type[api_errors.APIError]], ...] = (
    (NotFoundError, api_errors.NotFound),
    (ConflictError, api_errors.Conflict),
    (AuthenticationError, api_errors.Unauthorized),
    (AuthorizationError, api_errors.Forbidden),
    (UpstreamError, api_errors.UpstreamFailure),
)


@dataclass(slots=True)
class ServiceContext:
    """Who is calling, and under which request id."""

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Services open a unit of work per operation and never reach for the
    global session themselves. Redis-backed stores, the payment gateway and
    the mail queue arrive through subclass constructors.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """Read-only scope; ``isolation`` falls back to :attr:`DEFAULT_READ_ISOLATION`."""
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Turn a service error into the :class:`~storefront.core.errors.APIError`
        the JSON API answers with.

        Failing cart lines become ``400 integrity_violation`` with every line
        listed under ``details.errors``. Other service errors without a
        dedicated status answer ``400 bad_request``. Anything that is not a
        :class:`ServiceError` is returned unchanged.
        """
        for service_type, api_type in _HTTP_TRANSLATIONS:
            if isinstance(exc, service_type):
                return api_type(str(exc))
        if isinstance(exc, IntegrityViolationError):
            return api_errors.APIError(
                str(exc),
                status_code=400,
                code="integrity_violation",
                details={"errors": list(exc.errors)},
            )
        if isinstance(exc, ServiceError):
            return api_errors.APIError(str(exc))
        return exc
