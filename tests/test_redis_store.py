"""Tests for RedisStore implementation.

Note: The live tests require a running Redis instance.
They will be skipped if Redis is not available.
"""

import asyncio
import time
from unittest import mock

import pytest
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import PaymentService, Transaction
from idemguard import (
    CoordinatorConfig,
    DataclassCodec,
    IdempotencyCoordinator,
    StoreError,
    StoreUnavailableError,
)
from idemguard.stores import AsyncRedisStore, RedisStore


@pytest.fixture
def redis_client():
    """Create a Redis client for testing."""
    try:
        client = Redis(host="localhost", port=6379, db=15, decode_responses=False)
        # Test connection
        client.ping()
    except RedisConnectionError:
        pytest.skip("Redis server not running")

    client.flushdb()
    yield client
    # Cleanup
    client.flushdb()
    client.close()


@pytest.fixture
def redis_store(redis_client):
    """Create a RedisStore instance for testing."""
    return RedisStore(redis_client)


def test_redis_store_get_set(redis_store):
    """Test basic get/set operations with RedisStore."""
    redis_store.set("test:1", b'{"data": 123}', ttl=None)

    assert redis_store.get("test:1") == b'{"data": 123}'
    assert redis_store.get("test:missing") is None


def test_redis_store_ttl(redis_store):
    """Test sub-second TTL expiration with RedisStore."""
    redis_store.set("test:1", b"value", ttl=0.2)

    # Should exist immediately
    assert redis_store.get("test:1") == b"value"

    # Wait for expiration
    time.sleep(0.4)

    # Should be gone
    assert redis_store.get("test:1") is None


def test_redis_store_delete(redis_store):
    """Test deletion with RedisStore."""
    redis_store.set("test:1", b"value")
    redis_store.delete("test:1")

    assert redis_store.get("test:1") is None


def test_redis_store_set_if_absent(redis_store, redis_client):
    """Test SET NX semantics and the lock TTL."""
    assert redis_store.set_if_absent("lock:1", b"true", ttl=300) is True
    assert redis_store.set_if_absent("lock:1", b"true", ttl=300) is False

    assert 0 < redis_client.pttl("lock:1") <= 300_000


def test_redis_store_decoded_client(redis_client):
    """Test that clients with decode_responses still yield bytes."""
    pool = redis_client.connection_pool.connection_kwargs
    client = Redis(host=pool["host"], port=pool["port"], db=15, decode_responses=True)
    store = RedisStore(client)

    store.set("test:1", b"value")

    assert store.get("test:1") == b"value"
    client.close()


def test_coordinator_over_redis(redis_store, redis_client):
    """Test the cached-by-key scenario against a real Redis."""
    payments = PaymentService()
    coordinator = IdempotencyCoordinator(
        redis_store, config=CoordinatorConfig(), codec=DataclassCodec(Transaction)
    )

    first = coordinator.execute("k1", lambda: payments.create("100.50", "USD"))
    second = coordinator.execute("k1", lambda: payments.create("999", "EUR"))

    assert second.cached is True
    assert second.value == first.value
    assert redis_client.exists("idempotency:k1:processing") == 0
    assert b'"id":1' in redis_client.get("idempotency:k1")
    # Result TTL is 24 hours
    assert 0 < redis_client.ttl("idempotency:k1") <= 24 * 60 * 60


def test_redis_errors_become_store_errors():
    """Test that client failures are raised as StoreError."""
    client = mock.Mock()
    client.get.side_effect = RedisConnectionError("refused")
    client.set.side_effect = RedisConnectionError("refused")
    client.delete.side_effect = RedisConnectionError("refused")
    store = RedisStore(client)

    with pytest.raises(StoreError) as exc_info:
        store.get("idempotency:k")
    assert exc_info.value.operation == "get"

    with pytest.raises(StoreError):
        store.set("idempotency:k", b"v", ttl=10)

    with pytest.raises(StoreError) as exc_info:
        store.set_if_absent("idempotency:k:processing", b"true", ttl=300)
    assert exc_info.value.slot == "idempotency:k:processing"

    with pytest.raises(StoreError):
        store.delete("idempotency:k")


def test_redis_set_if_absent_uses_nx_px():
    """Test that the conditional set is a single SET NX PX call."""
    client = mock.Mock()
    client.set.return_value = None
    store = RedisStore(client)

    assert store.set_if_absent("lock", b"true", ttl=300) is False
    client.set.assert_called_once_with("lock", b"true", nx=True, px=300_000)


def test_coordinator_fails_fast_when_redis_down():
    """Test that an unreachable Redis aborts before the operation runs."""
    client = mock.Mock()
    client.get.side_effect = RedisConnectionError("refused")
    coordinator = IdempotencyCoordinator(RedisStore(client))
    invoked = []

    with pytest.raises(StoreUnavailableError):
        coordinator.execute("k", lambda: invoked.append(True))

    assert invoked == []
    client.set.assert_not_called()


def test_async_redis_store_errors():
    """Test the asyncio store's error translation and SET NX PX call."""
    client = mock.AsyncMock()
    client.set.return_value = True
    client.get.side_effect = RedisConnectionError("refused")
    store = AsyncRedisStore(client)

    async def scenario():
        acquired = await store.set_if_absent("lock", b"true", ttl=1.5)
        with pytest.raises(StoreError):
            await store.get("result")
        return acquired

    assert asyncio.run(scenario()) is True
    client.set.assert_awaited_once_with("lock", b"true", nx=True, px=1500)
