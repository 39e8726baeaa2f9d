import hmac
import re

_STRIP_CHARS = re.compile(r"[<>\"'`]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

MAX_ID = 2**31 - 1


def is_owner(*, actor_id, owner_id) -> bool:
    """Return True if the actor owns the resource (constant-time compare)."""
    if actor_id is None or owner_id is None:
        return False
    return hmac.compare_digest(str(actor_id).encode(), str(owner_id).encode())


def sanitize_text(value, max_length: int = 500) -> str:
    """Drop markup quotes and control characters, trim, and cap the length."""
    if not isinstance(value, str):
        return ""
    cleaned = _CONTROL_CHARS.sub("", _STRIP_CHARS.sub("", value)).strip()
    return cleaned[:max_length]


def coerce_id(value) -> int | None:
    """Parse a positive integer identifier from JSON input; ``None`` if malformed.

    Ids above the signed 32-bit range of the key columns are malformed too.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        value = int(value)
    if not isinstance(value, int):
        return None
    return value if 0 < value <= MAX_ID else None
