"""Authentication endpoints: registration, login, sessions and OTP flows."""

from __future__ import annotations

from flask import Blueprint, g, request

from storefront.api.deps import (
    ACCESS_COOKIE,
    LOGIN_URL,
    REFRESH_COOKIE,
    VERIFY_COOKIE,
    VERIFY_URL,
    account_service,
    auth_service,
    clear_auth_cookies,
    clear_verify_cookie,
    json_body,
    json_response,
    require_auth,
    require_identity,
    set_auth_cookies,
    set_verify_cookie,
    timing,
)
from storefront.core.errors import APIError, Unauthorized
from storefront.schemas import (
    ForgotPasswordSchema,
    IdentitySchema,
    LoginSchema,
    RegisterSchema,
    ResetPasswordSchema,
    VerifyEmailSchema,
)
from storefront.services._shared.errors import AuthenticationError
from storefront.services.account.dto import LoginIn, RegisterIn, ResetPasswordIn, VerifyEmailIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
verify_schema = VerifyEmailSchema()
forgot_schema = ForgotPasswordSchema()
reset_schema = ResetPasswordSchema()
identity_schema = IdentitySchema()

RESET_SENT_MESSAGE = "If an account exists for that email, a reset code has been sent."


def _verification_expired(exc: AuthenticationError) -> APIError:
    return APIError(
        str(exc),
        status_code=401,
        code="unauthorized",
        details={"redirect": LOGIN_URL},
    )


@bp.post("/register")
@timing
def register():
    """Create an unverified account and start email verification."""

    data = register_schema.load(json_body())
    result = account_service().register(RegisterIn(**data))
    response = json_response({"ok": True, "redirect": VERIFY_URL}, status=201)
    set_verify_cookie(response, result.verify_token)
    return response


@bp.post("/login")
@timing
def login():
    """Check credentials; unverified accounts are sent to verification."""

    data = login_schema.load(json_body())
    result = account_service().login(LoginIn(**data))

    if result.requires_verification:
        response = json_response(
            {"error": "Please verify your email to continue.", "redirect": VERIFY_URL},
            status=403,
        )
        clear_auth_cookies(response)
        set_verify_cookie(response, result.verify_token)
        return response

    response = json_response({"ok": True, "user": identity_schema.dump(result.identity)})
    set_auth_cookies(response, result.tokens)
    return response


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh cookie into a new token pair."""

    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        g.clear_auth_cookies = True
        raise Unauthorized("Please login to continue.")
    try:
        session = auth_service().rotate(token)
    except AuthenticationError as exc:
        g.clear_auth_cookies = True
        raise Unauthorized("Please login to continue.") from exc

    response = json_response({"ok": True})
    set_auth_cookies(response, session.tokens)
    return response


@bp.post("/logout")
@timing
def logout():
    """Revoke whatever tokens were presented and clear the cookies."""

    auth_service().logout(
        access_token=request.cookies.get(ACCESS_COOKIE),
        refresh_token=request.cookies.get(REFRESH_COOKIE),
    )
    response = json_response({"ok": True})
    clear_auth_cookies(response)
    return response


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """End every session of the caller on every device."""

    identity = require_identity()
    auth_service().logout_all(identity.user_id)
    response = json_response({"ok": True})
    clear_auth_cookies(response)
    return response


@bp.post("/verify-email")
@timing
def verify_email():
    """Confirm the emailed code and sign the user in."""

    data = verify_schema.load(json_body())
    try:
        session = account_service().verify_email(
            VerifyEmailIn(verify_token=request.cookies.get(VERIFY_COOKIE), otp=data.get("otp"))
        )
    except AuthenticationError as exc:
        raise _verification_expired(exc) from exc

    response = json_response({"ok": True, "user": identity_schema.dump(session.identity)})
    clear_verify_cookie(response)
    set_auth_cookies(response, session.tokens)
    return response


@bp.post("/verify-email/resend")
@timing
def resend_verification():
    """Mail a fresh verification code."""

    try:
        sent = account_service().resend_verification(request.cookies.get(VERIFY_COOKIE))
    except AuthenticationError as exc:
        raise _verification_expired(exc) from exc
    if not sent:
        return json_response({"ok": True, "verified": True, "redirect": LOGIN_URL})
    return json_response({"ok": True, "message": "A new code has been sent."})


@bp.post("/forgot-password")
@timing
def forgot_password():
    """Start a password reset; the answer never reveals whether the email exists."""

    data = forgot_schema.load(json_body())
    account_service().forgot_password(data["email"])
    return json_response({"ok": True, "message": RESET_SENT_MESSAGE}, status=202)


@bp.post("/reset-password")
@timing
def reset_password():
    """Set a new password with a reset code; every session is ended."""

    data = reset_schema.load(json_body())
    account_service().reset_password(ResetPasswordIn(**data))
    response = json_response({"ok": True, "redirect": LOGIN_URL})
    clear_auth_cookies(response)
    return response
