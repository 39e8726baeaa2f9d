"""Common Marshmallow schemas and helpers shared across resources."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marshmallow import EXCLUDE, Schema, fields


class BaseSchema(Schema):
    """Base schema enabling ordered output and ignoring unknown input keys."""

    class Meta:
        ordered = True
        unknown = EXCLUDE


class Money(fields.Decimal):
    """Two-decimal amount serialized as a string (no float drift)."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(places=2, as_string=True, **kwargs)


def first_error(messages: Any, default: str = "Invalid request") -> str:
    """Return the first human message from a marshmallow ``messages`` tree."""
    if isinstance(messages, str):
        return messages
    if isinstance(messages, Mapping):
        for value in messages.values():
            found = first_error(value, "")
            if found:
                return found
    elif isinstance(messages, (list, tuple)):
        for value in messages:
            found = first_error(value, "")
            if found:
                return found
    return default
