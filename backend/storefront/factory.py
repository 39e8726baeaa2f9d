"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask

from storefront.core.config import BaseConfig, get_config, validate_config
from storefront.core.logger import configure_logging, init_app as init_logging

if TYPE_CHECKING:
    from storefront.core.extensions import Infrastructure


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    infrastructure: Infrastructure | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object/class or import path; inferred from
        ``APP_ENV`` when omitted.
    :param infrastructure: Pre-built client handles (tests pass in-memory
        doubles); built from the config when omitted.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    validate_config(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers if running behind a reverse proxy
    from storefront.core import proxy

    proxy.init_app(app)

    from storefront.core import extensions

    extensions.init_app(app, infrastructure=infrastructure)

    init_logging(app)

    from storefront.core import cors

    cors.init_app(app)

    from storefront.api import init_app as init_api

    init_api(app)

    from storefront.core import errors

    errors.init_app(app)

    from storefront import cli as app_cli

    app_cli.init_app(app)

    return app
