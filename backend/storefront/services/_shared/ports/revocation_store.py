from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol

MAX_JTI_LENGTH = 128


class RevocationStoreError(Exception):
    """The backing store could not record a revocation."""


def is_valid_jti(jti: object) -> bool:
    """Return ``True`` for a non-empty, bounded, whitespace-free string."""
    return (
        isinstance(jti, str)
        and 0 < len(jti) <= MAX_JTI_LENGTH
        and not any(ch.isspace() for ch in jti)
    )


class RevocationStore(Protocol):
    """
    Abstraction for the token revocation list keyed by ``jti``.

    ``blacklist`` must be idempotent and keep entries only for the token's
    remaining lifetime. Malformed identifiers are ignored.
    """

    def blacklist(self, jti: str, ttl_seconds: int) -> None: ...
    def is_blacklisted(self, jti: str) -> bool: ...


class InMemoryRevocationStore(RevocationStore):
    """Process-local revocation list (tests and local debug).

    Expired entries are swept on every ``blacklist`` call, so the map only
    holds tokens that are still alive.
    """

    def __init__(self) -> None:
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def blacklist(self, jti: str, ttl_seconds: int) -> None:
        if not is_valid_jti(jti):
            return
        now = datetime.now(UTC)
        with self._lock:
            for stale in [k for k, exp in self._entries.items() if exp <= now]:
                del self._entries[stale]
            self._entries[jti] = now + timedelta(seconds=max(1, int(ttl_seconds)))

    def is_blacklisted(self, jti: str) -> bool:
        if not is_valid_jti(jti):
            return False
        with self._lock:
            expires_at = self._entries.get(jti)
            if expires_at is None:
                return False
            if expires_at <= datetime.now(UTC):
                del self._entries[jti]
                return False
            return True
