"""Shared API helpers: responses, timing, auth resolution, cookies, services."""

from __future__ import annotations

import functools
import secrets
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from flask import Flask, Response, current_app, g, jsonify, redirect, request, session

from storefront.core.config import parse_ttl
from storefront.core.errors import APIError, Unauthorized
from storefront.core.extensions import get_infrastructure
from storefront.core.logger import ensure_request_id
from storefront.services._shared.base import ServiceContext
from storefront.services.account.service import AccountService
from storefront.services.addresses.service import AddressService
from storefront.services.auth.dto import AuthResolution, Identity, ResolutionState, TokenPairOut
from storefront.services.auth.service import AuthService
from storefront.services.cart.service import CartService
from storefront.services.checkout.dto import CheckoutRules
from storefront.services.checkout.service import CheckoutService
from storefront.services.orders.service import OrderQueryService

F = TypeVar("F", bound=Callable[..., Any])

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
VERIFY_COOKIE = "verify_token"
VERIFY_COOKIE_PATH = "/verify-email"
CHECKOUT_SESSION_KEY = "checkout_sid"

LOGIN_URL = "/login"
VERIFY_URL = "/verify-email"


# --------------------------------------------------------------------------- #
# Responses
# --------------------------------------------------------------------------- #


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def json_body() -> dict[str, Any]:
    """Request body as a dict; anything else counts as empty."""

    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


# --------------------------------------------------------------------------- #
# Cookies
# --------------------------------------------------------------------------- #


def _cookie_options(path: str = "/") -> dict[str, Any]:
    cfg = current_app.config
    samesite = str(cfg.get("COOKIE_SAMESITE") or "lax").strip().capitalize()
    # Browsers drop SameSite=None cookies that are not Secure
    secure = bool(cfg.get("COOKIE_SECURE")) or samesite == "None"
    return {
        "httponly": True,
        "secure": secure,
        "samesite": samesite,
        "domain": cfg.get("COOKIE_DOMAIN") or None,
        "path": path,
    }


def _ttl_seconds(key: str, default: str) -> int:
    ttl: timedelta = parse_ttl(current_app.config.get(key, default))
    return int(ttl.total_seconds())


def set_auth_cookies(response: Response, tokens: TokenPairOut) -> Response:
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=_ttl_seconds("ACCESS_TOKEN_TTL", "15m"),
        **_cookie_options(),
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=_ttl_seconds("REFRESH_TOKEN_TTL", "7d"),
        **_cookie_options(),
    )
    g.auth_cookies_written = True
    return response


def clear_auth_cookies(response: Response) -> Response:
    options = _cookie_options()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            path=options["path"],
            domain=options["domain"],
            secure=options["secure"],
            httponly=True,
            samesite=options["samesite"],
        )
    g.auth_cookies_written = True
    return response


def set_verify_cookie(response: Response, token: str) -> Response:
    response.set_cookie(
        VERIFY_COOKIE,
        token,
        max_age=_ttl_seconds("VERIFY_TOKEN_TTL", "15m"),
        **_cookie_options(VERIFY_COOKIE_PATH),
    )
    return response


def clear_verify_cookie(response: Response) -> Response:
    options = _cookie_options(VERIFY_COOKIE_PATH)
    response.delete_cookie(
        VERIFY_COOKIE,
        path=options["path"],
        domain=options["domain"],
        secure=options["secure"],
        httponly=True,
        samesite=options["samesite"],
    )
    return response


# --------------------------------------------------------------------------- #
# Services
# --------------------------------------------------------------------------- #


def service_context() -> ServiceContext:
    resolution: AuthResolution | None = g.get("auth")
    identity = resolution.identity if resolution is not None else None
    return ServiceContext(
        actor_id=identity.user_id if identity is not None else None,
        request_id=ensure_request_id(),
    )


def auth_service() -> AuthService:
    infra = get_infrastructure()
    return AuthService(
        token_provider=infra.token_provider,
        revocation_store=infra.revocation_store,
        ctx=service_context(),
    )


def account_service() -> AccountService:
    cfg = current_app.config
    return AccountService(
        auth=auth_service(),
        mail_queue=get_infrastructure().mail_queue,
        otp_ttl=timedelta(minutes=int(cfg.get("OTP_TTL_MINUTES", 10))),
        otp_max_attempts=int(cfg.get("OTP_MAX_ATTEMPTS", 5)),
        ctx=service_context(),
    )


def checkout_service() -> CheckoutService:
    infra = get_infrastructure()
    return CheckoutService(
        payment_gateway=infra.payment_gateway,
        pending_orders=infra.pending_orders,
        rules=CheckoutRules.from_config(current_app.config),
        ctx=service_context(),
    )


def order_service() -> OrderQueryService:
    return OrderQueryService(ctx=service_context())


def address_service() -> AddressService:
    cfg = current_app.config
    return AddressService(
        max_addresses=int(cfg.get("MAX_ADDRESSES", 5)),
        country=str(cfg.get("ADDRESS_COUNTRY", "India")),
        ctx=service_context(),
    )


def cart_service() -> CartService:
    return CartService(
        max_line_quantity=int(current_app.config.get("MAX_CART_LINE_QUANTITY", 99)),
        ctx=service_context(),
    )


# --------------------------------------------------------------------------- #
# Auth resolution
# --------------------------------------------------------------------------- #


def resolve_auth() -> AuthResolution:
    """Resolve the caller once per request (cached on ``g``)."""

    if "auth" not in g:
        g.auth = auth_service().resolve(
            request.cookies.get(ACCESS_COOKIE),
            request.cookies.get(REFRESH_COOKIE),
        )
    return g.auth


def current_identity() -> Identity | None:
    return resolve_auth().identity


def require_identity() -> Identity:
    """Identity of a route already guarded by an auth decorator."""

    identity = current_identity()
    if identity is None:  # pragma: no cover - decorators run first
        raise Unauthorized("Please login to continue.")
    return identity


def _reject_stale_cookies() -> None:
    """Ask the response hook to clear auth cookies when some were sent."""

    if request.cookies.get(ACCESS_COOKIE) or request.cookies.get(REFRESH_COOKIE):
        g.clear_auth_cookies = True


def login_required(func: F) -> F:
    """Browser variant: anonymous callers are redirected to the login page."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not resolve_auth().is_authenticated:
            _reject_stale_cookies()
            return redirect(LOGIN_URL)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_auth(func: F) -> F:
    """JSON variant: anonymous callers get a 401."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not resolve_auth().is_authenticated:
            _reject_stale_cookies()
            raise Unauthorized("Please login to continue.")
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def verified_required(*, redirect_to_page: bool = False) -> Callable[[F], F]:
    """
    Require a verified email. Apply below an auth decorator.

    :param redirect_to_page: Redirect to the verification page instead of
        answering 403.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            identity = current_identity()
            if identity is None:
                if redirect_to_page:
                    return redirect(LOGIN_URL)
                raise Unauthorized("Please login to continue.")
            if not identity.email_verified:
                if redirect_to_page:
                    return redirect(VERIFY_URL)
                raise APIError(
                    "Please verify your email to continue.",
                    status_code=403,
                    code="email_not_verified",
                    details={"redirect": VERIFY_URL},
                )
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def checkout_session_id(*, create: bool = False) -> str | None:
    """
    Server-issued id the pending order is keyed by, kept in the signed
    session cookie.
    """

    sid = session.get(CHECKOUT_SESSION_KEY)
    if sid is None and create:
        sid = secrets.token_urlsafe(24)
        session[CHECKOUT_SESSION_KEY] = sid
    return sid


def init_app(app: Flask) -> None:
    """Install the hooks that reset per-request auth state and write cookies."""

    @app.before_request
    def _reset_auth_state() -> None:
        for key in ("auth", "auth_cookies_written", "clear_auth_cookies"):
            g.pop(key, None)

    @app.after_request
    def _apply_auth_cookies(response: Response) -> Response:
        if g.get("auth_cookies_written"):
            return response
        if g.get("clear_auth_cookies"):
            return clear_auth_cookies(response)
        resolution: AuthResolution | None = g.get("auth")
        if resolution is not None and resolution.state is ResolutionState.ROTATED:
            set_auth_cookies(response, resolution.tokens)
        return response
