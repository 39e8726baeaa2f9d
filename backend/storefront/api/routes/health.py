"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.api.deps import json_response, timing
from storefront.core.extensions import db, get_infrastructure

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and redis health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    client = get_infrastructure().redis_client
    if client is None:
        redis_status = "disabled"
    else:
        try:
            client.ping()
            redis_status = "ok"
        except RedisError:
            current_app.logger.exception("healthcheck.redis_error")
            redis_status = "fail"

    healthy = db_status == "ok" and redis_status != "fail"
    version = current_app.config.get("APP_VERSION", "dev")
    commit = current_app.config.get("APP_COMMIT", "unknown")
    payload = {
        "status": "ok" if healthy else "degraded",
        "db": db_status,
        "redis": redis_status,
        "version": version,
        "commit": commit,
    }
    return json_response(payload, status=200 if healthy else 503)
