"""HTTP layer: page and JSON blueprints plus the request hooks in ``deps``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def join_prefix(base: str, rel: str) -> str:
    """``join_prefix("/api", "cart")`` -> ``"/api/cart"``; ``("", "")`` -> ``"/"``."""
    parts = [p for p in (base.strip("/"), rel.strip("/")) if p]
    return "/" + "/".join(parts)


def register_blueprint_group(
    app: Flask,
    *,
    base_prefix: str,
    entries: Iterable[tuple[Blueprint, str]],
) -> None:
    """Mount each ``(blueprint, relative_prefix)`` beneath ``base_prefix``."""
    for bp, rel_prefix in entries:
        app.register_blueprint(bp, url_prefix=join_prefix(base_prefix, rel_prefix))


def init_app(app: Flask) -> None:
    """Site routes mount at the root, JSON routes beneath ``API_BASE_PREFIX``."""
    from storefront.api import deps
    from storefront.api.routes import API_REGISTRY, SITE_REGISTRY

    register_blueprint_group(app, base_prefix="", entries=SITE_REGISTRY)
    register_blueprint_group(
        app, base_prefix=app.config.get("API_BASE_PREFIX", "/api"), entries=API_REGISTRY
    )
    deps.init_app(app)


__all__ = ["init_app", "join_prefix", "register_blueprint_group"]
