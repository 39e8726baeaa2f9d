from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

import redis  # type: ignore[import-untyped]

from storefront.services._shared.ports.pending_order_store import PendingOrder, PendingOrderStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisPendingOrderStore(PendingOrderStore):
    """
    Pending orders keyed by checkout session id.

    Single-key ``SET EX`` / ``GET`` / ``DEL`` only; concurrent checkouts for the
    same session are last-write-wins.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis
    prefix: str = "checkout:pending"

    def _k(self, session_id: str) -> str:
        return f"{self.prefix}:{session_id}"

    def save(self, session_id: str, record: PendingOrder, *, ttl: timedelta) -> None:
        self.r.set(self._k(session_id), record.to_json(), ex=max(1, int(ttl.total_seconds())))

    def load(self, session_id: str) -> PendingOrder | None:
        raw = self.r.get(self._k(session_id))
        if raw is None:
            return None
        try:
            return PendingOrder.from_json(raw)
        except (ValueError, KeyError, TypeError):
            # Unreadable record: drop it so the user restarts checkout.
            log.warning("pending_order.corrupt", extra={"session_id": session_id})
            self.discard(session_id)
            return None

    def discard(self, session_id: str) -> None:
        self.r.delete(self._k(session_id))
