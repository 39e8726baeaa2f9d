"""
Errors raised by the storefront services.

Nothing here knows about HTTP. ``str(exc)`` is always safe to show a
shopper; the JSON API turns these into problem documents through
``BaseService.translate_exceptions`` and the checkout blueprints into their
``{success, error, redirect}`` body.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """Whether ``exc`` names ``constraint_name`` (or, on SQLite, the column)."""
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


class ServiceError(Exception):
    """Root of every service-level failure."""


class ValidationError(ServiceError):
    """Malformed or missing input."""


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    No row for ``key``, or a row owned by somebody else.

    ``message`` replaces the default ``"<entity> not found: <key>"`` text.
    """

    entity: str
    key: str | int | None = None
    message: str | None = None

    def __str__(self) -> str:
        return self.message or f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """A uniqueness rule (one email per user, one default address) was hit."""

    entity: str
    detail: str

    def __str__(self) -> str:
        return self.detail


class AuthenticationError(ServiceError):
    """Missing, invalid, revoked or expired credential."""

    def __init__(self, message: str = "Authentication required.") -> None:
        super().__init__(message)


class AuthorizationError(ServiceError):
    """The caller is authenticated but may not act on the resource."""

    def __init__(self, message: str = "Forbidden.") -> None:
        super().__init__(message)


@dataclass(slots=True)
class IntegrityViolationError(ServiceError):
    """Every checkout line that failed the stock or price checks, in cart order."""

    errors: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.errors[0] if self.errors else "Some items in your cart are unavailable."


class UpstreamError(ServiceError):
    """The payment provider failed. Provider detail only goes to the logs."""

    def __init__(self, message: str = "Payment service is unavailable. Please try again.") -> None:
        super().__init__(message)
