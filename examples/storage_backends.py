"""Examples of using different storage backends."""

import asyncio
import tempfile

from idemguard import AsyncIdempotencyCoordinator, IdempotencyCoordinator, MemoryStore
from idemguard.stores import FileStore


def create_invoice(user_id: int, amount: float) -> dict:
    print(f"  → Creating invoice for user {user_id}, amount ${amount}")
    return {"invoice_id": 123, "user_id": user_id, "amount": amount}


def run_twice(coordinator: IdempotencyCoordinator, key: str) -> None:
    for attempt in ("First", "Second"):
        execution = coordinator.execute(key, lambda: create_invoice(1, 100.0))
        print(f"{attempt} call result: {execution.value} cached={execution.cached}")


# Example 1: MemoryStore (single process only)
print("=" * 60)
print("Example 1: MemoryStore (in-memory, single process)")
print("=" * 60)

run_twice(IdempotencyCoordinator(MemoryStore()), "memory-demo")
print()

# Example 2: FileStore (persistent, multi-process safe)
print("=" * 60)
print("Example 2: FileStore (persistent, multi-process safe)")
print("=" * 60)

with tempfile.TemporaryDirectory() as tmpdir:
    file_store = FileStore(tmpdir)
    run_twice(IdempotencyCoordinator(file_store), "file-demo")

    # A new store over the same directory sees the cached result
    restarted = IdempotencyCoordinator(FileStore(tmpdir))
    execution = restarted.execute("file-demo", lambda: create_invoice(1, 100.0))
    print(f"After restart: cached={execution.cached}")
print()

# Example 3: RedisStore (distributed, multi-server safe)
print("=" * 60)
print("Example 3: RedisStore (distributed, multi-server safe)")
print("=" * 60)

try:
    from redis.exceptions import RedisError

    from idemguard.stores import AsyncRedisStore, RedisStore

    redis_store = RedisStore.from_url("redis://localhost:6379/0")
    redis_store.client.ping()  # Test connection

    run_twice(IdempotencyCoordinator(redis_store), "redis-demo")

    async def async_demo() -> None:
        store = AsyncRedisStore.from_url("redis://localhost:6379/0")
        coordinator = AsyncIdempotencyCoordinator(store)

        async def operation() -> dict:
            return create_invoice(2, 50.0)

        execution = await coordinator.execute("redis-async-demo", operation)
        print(f"Async call result: {execution.value} cached={execution.cached}")
        await store.client.aclose()

    asyncio.run(async_demo())

    print("\n✅ RedisStore example completed successfully!")

except RedisError as e:
    print(f"⚠️  Redis not available: {e}")
    print("   Make sure Redis is running: redis-server")

print("""
Store Comparison:

┌─────────────┬────────────┬──────────────┬─────────────┐
│ Store       │ Persistent │ Multi-Process│ Multi-Server│
├─────────────┼────────────┼──────────────┼─────────────┤
│ MemoryStore │     ❌     │      ❌      │      ❌     │
│ FileStore   │     ✅     │      ✅      │      ❌     │
│ RedisStore  │     ✅     │      ✅      │      ✅     │
└─────────────┴────────────┴──────────────┴─────────────┘
""")
