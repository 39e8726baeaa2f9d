"""CORS for the JSON API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def init_app(app: Flask) -> None:
    """Allow cross-origin calls to ``API_BASE_PREFIX`` routes only.

    Auth rides on cookies, so credentials are allowed only when
    ``CORS_ORIGINS`` names explicit origins. A blank or ``*`` value opens the
    API to any origin without credentials.
    """
    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "").split(",") if o.strip()]
    any_origin = not origins or origins == ["*"]
    prefix = app.config.get("API_BASE_PREFIX", "/api").rstrip("/")

    CORS(
        app,
        resources={rf"{prefix}/*": {"origins": "*" if any_origin else origins}},
        supports_credentials=not any_origin,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
