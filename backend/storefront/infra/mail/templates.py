"""Transactional email templates rendered by the mail worker.

Each template is a pair of Jinja files under ``storefront/templates/mail``:
``<name>.html`` (autoescaped) and ``<name>.txt``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jinja2 import Environment, PackageLoader, TemplateNotFound, select_autoescape

RenderedMail = tuple[str, str]  # (html, text)

env = Environment(
    loader=PackageLoader("storefront", "templates/mail"),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    keep_trailing_newline=True,
)


def render(template: str, data: Mapping[str, Any]) -> RenderedMail:
    """Render ``template`` with ``data``.

    :raises KeyError: Unknown template name.
    """
    try:
        html = env.get_template(f"{template}.html")
        text = env.get_template(f"{template}.txt")
    except TemplateNotFound as exc:
        raise KeyError(template) from exc
    return html.render(**data), text.render(**data)
