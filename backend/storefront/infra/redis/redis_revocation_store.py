from __future__ import annotations

import logging
from typing import cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from storefront.services._shared.ports.revocation_store import (
    RevocationStore,
    RevocationStoreError,
    is_valid_jti,
)

log = logging.getLogger(__name__)


class RedisRevocationStore(RevocationStore):
    """
    Token revocation list by jti, one key per entry with a TTL.

    Checks fail closed: when Redis cannot answer, a token is treated as revoked.
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(jti: str) -> str:
        return f"bl:jti:{jti}"

    def blacklist(self, jti: str, ttl_seconds: int) -> None:
        if not is_valid_jti(jti):
            return
        ttl = max(1, int(ttl_seconds))
        try:
            # small marker with TTL; idempotent
            self.r.set(self._k(jti), "1", ex=ttl)
        except RedisError as exc:
            log.error("revocation.blacklist_failed", exc_info=True)
            raise RevocationStoreError("Could not record token revocation.") from exc

    def is_blacklisted(self, jti: str) -> bool:
        if not is_valid_jti(jti):
            return False
        try:
            return cast(int, self.r.exists(self._k(jti))) == 1
        except RedisError:
            log.error("revocation.lookup_failed", exc_info=True)
            return True
