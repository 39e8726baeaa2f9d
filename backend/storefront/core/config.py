"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset(
    {"CHANGE_ME", "CHANGE_ME_ACCESS", "CHANGE_ME_REFRESH"}
)

_TTL_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_TTL_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


# Load .env during development (no-op when missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """``True`` for 1/true/yes/y/on (any case); ``default`` when unset."""
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def parse_ttl(value: str | int | timedelta) -> timedelta:
    """Convert a TTL expression such as ``"15m"`` or ``"7d"`` to a timedelta.

    Parameters
    ----------
    value: str | int | timedelta
        Bare seconds, a number with an ``s``/``m``/``h``/``d`` suffix, or an
        existing :class:`~datetime.timedelta`.

    Returns
    -------
    datetime.timedelta
        Parsed duration.

    Raises
    ------
    ValueError
        If the expression cannot be parsed.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _TTL_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid TTL expression: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _TTL_UNITS[unit.lower()])


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for the JSON API blueprints (addresses, cart, health).
    SECRET_KEY: str
        Flask secret used for session signing (the checkout session id lives
        in the signed session cookie).
    JWT_ACCESS_SECRET, JWT_REFRESH_SECRET, JWT_VERIFY_SECRET: str
        Signing keys per token type. The verify key falls back to the refresh
        key when unset.
    ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL, VERIFY_TOKEN_TTL: str
        Token lifetimes (``15m``, ``7d``, ``15m`` by default).
    COOKIE_SECURE, COOKIE_SAMESITE, COOKIE_DOMAIN:
        Attributes applied to every auth cookie.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Cache used for revocation entries, pending orders and the mail queue.
    RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET: str | None
        Payment provider credentials.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "CHANGE_ME_ACCESS")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "CHANGE_ME_REFRESH")
    JWT_VERIFY_SECRET = os.getenv("JWT_VERIFY_SECRET") or None
    ACCESS_TOKEN_TTL = os.getenv("ACCESS_TOKEN_TTL", "15m")
    REFRESH_TOKEN_TTL = os.getenv("REFRESH_TOKEN_TTL", "7d")
    VERIFY_TOKEN_TTL = os.getenv("VERIFY_TOKEN_TTL", "15m")

    # Cookies
    COOKIE_SECURE = env_bool("COOKIE_SECURE", False)
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Cache
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Payment provider
    RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID") or None
    RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET") or None
    RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")
    PAYMENT_HTTP_TIMEOUT = float(os.getenv("PAYMENT_HTTP_TIMEOUT", "10"))

    # Checkout rules
    MAX_CART_ITEMS = env_int("MAX_CART_ITEMS", 50)
    MAX_ORDER_NOTE_LENGTH = env_int("MAX_ORDER_NOTE_LENGTH", 500)
    MIN_ORDER_AMOUNT = os.getenv("MIN_ORDER_AMOUNT", "1")
    MIN_ITEM_QUANTITY = 1
    MAX_ITEM_QUANTITY = env_int("MAX_ITEM_QUANTITY", 100)
    PENDING_ORDER_TTL = os.getenv("PENDING_ORDER_TTL", "30m")
    SHIPPING_CHARGE = os.getenv("SHIPPING_CHARGE", "0")
    COD_ADVANCE_DIVISOR = env_int("COD_ADVANCE_DIVISOR", 3)

    # Cart and addresses
    MAX_CART_LINE_QUANTITY = 99
    MAX_ADDRESSES = env_int("MAX_ADDRESSES", 5)
    ADDRESS_COUNTRY = os.getenv("ADDRESS_COUNTRY", "India")

    # OTP
    OTP_TTL_MINUTES = env_int("OTP_TTL_MINUTES", 10)
    OTP_MAX_ATTEMPTS = env_int("OTP_MAX_ATTEMPTS", 5)

    # Mail
    MAIL_QUEUE = os.getenv("MAIL_QUEUE", "mail_queue")
    MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@localhost")
    SMTP_HOST = os.getenv("SMTP_HOST") or None
    SMTP_PORT = env_int("SMTP_PORT", 587)
    SMTP_USER = os.getenv("SMTP_USER") or None
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD") or None
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXYFIX_HOPS = env_int("PROXYFIX_HOPS", 1)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default, which also allows in-memory fallbacks for
    Redis-backed stores and the payment gateway when they are not configured.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Redis or the payment provider unless explicitly told to.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    REDIS_URL = None
    RAZORPAY_KEY_ID = "rzp_test_key"
    RAZORPAY_KEY_SECRET = "rzp_test_secret"
    USE_PROXYFIX = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled; auth cookies default to ``Secure``.
    :func:`validate_config` rejects placeholder secrets at start-up.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    COOKIE_SECURE = env_bool("COOKIE_SECURE", True)
    SESSION_COOKIE_SECURE = True


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Config class named by ``APP_ENV``; development when unset or unknown."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def allows_in_memory_fallback(config: Mapping[str, object]) -> bool:
    """Return ``True`` when process-local stand-ins for Redis/Razorpay are acceptable."""
    return bool(config.get("TESTING") or config.get("DEBUG"))


def validate_config(config: Mapping[str, object]) -> None:
    """Fail fast on settings that are unsafe outside development and tests.

    Raises
    ------
    RuntimeError
        When placeholder secrets are still configured.
    """
    if allows_in_memory_fallback(config):
        return
    for key in ("SECRET_KEY", "JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
        if config.get(key) in PLACEHOLDER_SECRETS:
            raise RuntimeError(f"{key} must be set to a real secret in this environment.")
