from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class PendingOrder:
    """
    Ephemeral record bridging provider-order creation and the durable order.

    :param razorpay_order_id: Provider order id returned by the gateway.
    :type razorpay_order_id: str
    :param amount: Charge amount as a 2-decimal string (major units).
    :type amount: str
    :param user_id: Owner of the checkout attempt.
    :type user_id: int
    :param expires_at: Absolute expiry; authoritative over any store TTL.
    :type expires_at: datetime
    :param payload: JSON-ready order draft (items, snapshots, totals).
    :type payload: dict[str, Any]
    """

    razorpay_order_id: str
    amount: str
    user_id: int
    expires_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    def to_json(self) -> str:
        return json.dumps(
            {
                "razorpay_order_id": self.razorpay_order_id,
                "amount": self.amount,
                "user_id": self.user_id,
                "expires_at": self.expires_at.isoformat(),
                "payload": self.payload,
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> PendingOrder:
        data = json.loads(raw)
        return cls(
            razorpay_order_id=str(data["razorpay_order_id"]),
            amount=str(data["amount"]),
            user_id=int(data["user_id"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            payload=dict(data.get("payload") or {}),
        )


class PendingOrderStore(Protocol):
    """
    Session-scoped pending order storage.

    At most one record per checkout session id; ``save`` overwrites.
    """

    def save(self, session_id: str, record: PendingOrder, *, ttl: timedelta) -> None: ...
    def load(self, session_id: str) -> PendingOrder | None: ...
    def discard(self, session_id: str) -> None: ...


class InMemoryPendingOrderStore(PendingOrderStore):
    """Process-local pending order store with lazy TTL eviction."""

    def __init__(self) -> None:
        self._records: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def save(self, session_id: str, record: PendingOrder, *, ttl: timedelta) -> None:
        with self._lock:
            self._records[session_id] = (record.to_json(), datetime.now(UTC) + ttl)

    def load(self, session_id: str) -> PendingOrder | None:
        with self._lock:
            entry = self._records.get(session_id)
            if entry is None:
                return None
            raw, evict_at = entry
            if evict_at <= datetime.now(UTC):
                del self._records[session_id]
                return None
        return PendingOrder.from_json(raw)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)
