"""Unit tests for the pending order stores."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from freezegun import freeze_time
from storefront.infra.redis.redis_pending_order_store import RedisPendingOrderStore
from storefront.services._shared.ports.pending_order_store import (
    InMemoryPendingOrderStore,
    PendingOrder,
)


def _record(**overrides) -> PendingOrder:
    values = {
        "razorpay_order_id": "order_abc",
        "amount": "150.00",
        "user_id": 3,
        "expires_at": datetime.now(UTC) + timedelta(minutes=30),
        "payload": {"cart_id": 9, "items": [{"product_id": 1, "quantity": 2}]},
    }
    values.update(overrides)
    return PendingOrder(**values)


@pytest.fixture()
def fake_redis():
    return fakeredis.FakeRedis()


@pytest.fixture(params=["memory", "redis"])
def store(request, fake_redis):
    if request.param == "memory":
        return InMemoryPendingOrderStore()
    return RedisPendingOrderStore(r=fake_redis)


def test_pending_order_json_round_trip() -> None:
    record = _record()
    restored = PendingOrder.from_json(record.to_json())
    assert restored == record


def test_is_expired_uses_absolute_expiry() -> None:
    record = _record(expires_at=datetime(2026, 1, 1, 12, 0, tzinfo=UTC))
    assert record.is_expired(datetime(2026, 1, 1, 11, 59, tzinfo=UTC)) is False
    assert record.is_expired(datetime(2026, 1, 1, 12, 0, tzinfo=UTC)) is True


def test_save_load_discard(store) -> None:
    assert store.load("sid-1") is None
    store.save("sid-1", _record(), ttl=timedelta(minutes=35))
    loaded = store.load("sid-1")
    assert loaded is not None
    assert loaded.razorpay_order_id == "order_abc"
    assert loaded.payload["cart_id"] == 9

    store.discard("sid-1")
    assert store.load("sid-1") is None
    # Discarding twice is harmless
    store.discard("sid-1")


def test_save_overwrites_same_session(store) -> None:
    store.save("sid-1", _record(razorpay_order_id="order_one"), ttl=timedelta(minutes=35))
    store.save("sid-1", _record(razorpay_order_id="order_two"), ttl=timedelta(minutes=35))
    assert store.load("sid-1").razorpay_order_id == "order_two"


def test_sessions_are_isolated(store) -> None:
    store.save("sid-1", _record(user_id=1), ttl=timedelta(minutes=35))
    store.save("sid-2", _record(user_id=2), ttl=timedelta(minutes=35))
    assert store.load("sid-1").user_id == 1
    assert store.load("sid-2").user_id == 2


def test_in_memory_store_evicts_after_ttl() -> None:
    store = InMemoryPendingOrderStore()
    with freeze_time("2026-01-01 00:00:00") as frozen:
        store.save("sid", _record(), ttl=timedelta(minutes=1))
        frozen.tick(61)
        assert store.load("sid") is None


def test_redis_store_uses_prefixed_key_with_ttl(fake_redis) -> None:
    store = RedisPendingOrderStore(r=fake_redis)
    store.save("sid", _record(), ttl=timedelta(minutes=35))
    assert fake_redis.exists("checkout:pending:sid") == 1
    assert 0 < fake_redis.ttl("checkout:pending:sid") <= 35 * 60


def test_redis_store_drops_corrupt_record(fake_redis) -> None:
    fake_redis.set("checkout:pending:sid", "{not json")
    store = RedisPendingOrderStore(r=fake_redis)
    assert store.load("sid") is None
    assert fake_redis.exists("checkout:pending:sid") == 0
