"""
Unit tests for the cache-aside task manager.
"""

import asyncio
import json

import pytest

from shared.errors import NotFoundError, StoreError, ValidationError
from shared.metrics import MetricsCollector
from service_tasks.app.cache import (
    ALL_TASKS_KEY, CacheStats, LookupState, TaskCacheManager, task_key,
)
from service_tasks.app.models import CacheStatus

from fakes import (
    CountingTaskStore, FailingCacheBackend, FailingTaskStore, RecordingCacheBackend,
)


class TestTaskCacheManager:
    """Test cases for TaskCacheManager."""

    @pytest.fixture
    def store(self):
        """Create a call-counting in-memory store."""
        return CountingTaskStore()

    @pytest.fixture
    def cache(self):
        """Create a recording in-process cache."""
        return RecordingCacheBackend()

    @pytest.fixture
    def stats(self):
        """Create CacheStats instance."""
        return CacheStats()

    @pytest.fixture
    def manager(self, store, cache, stats):
        """Create TaskCacheManager over the in-memory components."""
        return TaskCacheManager(store, cache, stats, list_ttl=3600, item_ttl=60)

    def assert_invariant(self, stats):
        snapshot = stats.get_stats()
        assert snapshot.total == snapshot.hits + snapshot.misses + snapshot.errors

    @pytest.mark.asyncio
    async def test_list_miss_then_hit(self, manager, store, cache, stats):
        """First read misses and populates the cache; the second is served from it."""
        await store.create({"description": "Buy milk"})

        first = await manager.list_tasks()
        assert first.status is CacheStatus.MISS
        assert [t.description for t in first.value] == ["Buy milk"]
        assert store.calls["find_all"] == 1
        assert (await cache.get(ALL_TASKS_KEY)).state is LookupState.HIT

        second = await manager.list_tasks()
        assert second.status is CacheStatus.HIT
        assert second.value == first.value
        assert store.calls["find_all"] == 1

        snapshot = stats.get_stats()
        assert (snapshot.hits, snapshot.misses, snapshot.errors) == (1, 1, 0)
        self.assert_invariant(stats)

    @pytest.mark.asyncio
    async def test_empty_list_is_cached(self, manager, store):
        """An empty collection is a valid cached value."""
        assert (await manager.list_tasks()).status is CacheStatus.MISS
        result = await manager.list_tasks()

        assert result.status is CacheStatus.HIT
        assert result.value == []
        assert store.calls["find_all"] == 1

    @pytest.mark.asyncio
    async def test_cached_list_round_trips(self, manager, store, cache):
        """The cached collection decodes to the tasks the store returned."""
        await store.create({"description": "Buy milk"})
        await store.create({"description": "Walk dog"})

        fresh = await manager.list_tasks()
        cached = json.loads((await cache.get(ALL_TASKS_KEY)).value)

        assert [item["id"] for item in cached] == [t.id for t in fresh.value]
        assert (await manager.list_tasks()).value == fresh.value

    @pytest.mark.asyncio
    async def test_ttl_policy_applied(self, store, stats):
        """Collection and item entries get their own TTLs."""
        ttls = {}

        class TTLRecordingCache(RecordingCacheBackend):
            async def set(self, key, value, ttl=None):
                ttls[key] = ttl
                await super().set(key, value, ttl)

        manager = TaskCacheManager(store, TTLRecordingCache(), stats, list_ttl=3600, item_ttl=60)
        task = await store.create({"description": "Buy milk"})

        await manager.list_tasks()
        await manager.get_task(task.id)

        assert ttls == {ALL_TASKS_KEY: 3600, task_key(task.id): 60}

    @pytest.mark.asyncio
    async def test_ttl_disabled(self, store, cache, stats):
        """With TTL disabled entries are stored without expiry."""
        manager = TaskCacheManager(store, cache, stats, use_ttl=False)

        await manager.list_tasks()

        assert cache._entries[ALL_TASKS_KEY][1] is None

    @pytest.mark.asyncio
    async def test_get_task_miss_then_hit(self, manager, store, stats):
        """Single task reads are cached under their own key."""
        task = await store.create({"description": "Buy milk"})

        first = await manager.get_task(task.id)
        second = await manager.get_task(task.id)

        assert first.status is CacheStatus.MISS
        assert second.status is CacheStatus.HIT
        assert second.value == task
        assert store.calls["find_by_pk"] == 1

    @pytest.mark.asyncio
    async def test_get_missing_task_is_not_cached(self, manager, store, cache, stats):
        """A missing task raises NotFoundError and leaves nothing in the cache."""
        with pytest.raises(NotFoundError):
            await manager.get_task(9999)

        assert cache.operations == []
        assert stats.get_stats().misses == 1

    @pytest.mark.asyncio
    async def test_create_invalidates_collection(self, manager, store, cache, stats):
        """Creating a task makes the next collection read a miss that includes it."""
        await manager.list_tasks()

        task = await manager.create_task("Buy milk")

        assert task.id is not None
        assert task.description == "Buy milk"
        assert task.completed is False
        assert ("invalidate", ALL_TASKS_KEY) in cache.operations

        result = await manager.list_tasks()
        assert result.status is CacheStatus.MISS
        assert [t.id for t in result.value] == [task.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("description", [None, "", "   "])
    async def test_create_requires_description(self, manager, store, cache, description):
        """Missing or blank descriptions are rejected before touching the store."""
        with pytest.raises(ValidationError):
            await manager.create_task(description)

        assert await store.find_all() == []
        assert cache.operations == []

    @pytest.mark.asyncio
    async def test_update_invalidates_collection_and_item(self, manager, store, cache):
        """Updating a task invalidates both its entry and the collection."""
        task = await store.create({"description": "Buy milk"})
        await manager.list_tasks()
        await manager.get_task(task.id)

        updated = await manager.update_task(task.id, completed=True)

        assert updated.completed is True
        assert updated.description == "Buy milk"
        assert ("invalidate", ALL_TASKS_KEY) in cache.operations
        assert ("invalidate", task_key(task.id)) in cache.operations

        listed = await manager.list_tasks()
        single = await manager.get_task(task.id)
        assert listed.status is CacheStatus.MISS
        assert listed.value[0].completed is True
        assert single.status is CacheStatus.MISS
        assert single.value.completed is True

    @pytest.mark.asyncio
    async def test_update_missing_task_leaves_cache_alone(self, manager, store, cache):
        """Updating an unknown task raises NotFoundError without cache mutations."""
        with pytest.raises(NotFoundError):
            await manager.update_task(9999, description="Nope")

        assert store.calls["update"] == 1
        assert cache.operations == []

    @pytest.mark.asyncio
    async def test_update_rejects_blank_description(self, manager, store, cache):
        """A blank replacement description is a validation error."""
        task = await store.create({"description": "Buy milk"})

        with pytest.raises(ValidationError):
            await manager.update_task(task.id, description=" ")

        assert store.calls["update"] == 0
        assert cache.operations == []

    @pytest.mark.asyncio
    async def test_delete_invalidates_collection_and_removes_item(self, manager, store, cache):
        """Deleting a task invalidates the collection and removes its own entry."""
        task = await store.create({"description": "Buy milk"})
        await manager.get_task(task.id)

        await manager.delete_task(task.id)

        assert ("invalidate", ALL_TASKS_KEY) in cache.operations
        assert ("delete", task_key(task.id)) in cache.operations
        assert task_key(task.id) not in cache
        with pytest.raises(NotFoundError):
            await manager.get_task(task.id)
        assert (await manager.list_tasks()).value == []

    @pytest.mark.asyncio
    async def test_delete_missing_task(self, manager, cache):
        """Deleting an unknown task raises NotFoundError without cache mutations."""
        with pytest.raises(NotFoundError):
            await manager.delete_task(9999)

        assert cache.operations == []

    @pytest.mark.asyncio
    async def test_cache_unreachable_falls_back_to_store(self, store, stats):
        """A failing cache degrades to store reads and counts exactly one error."""
        manager = TaskCacheManager(store, FailingCacheBackend(), stats)
        await store.create({"description": "Buy milk"})

        result = await manager.list_tasks()

        assert result.status is CacheStatus.ERROR
        assert [t.description for t in result.value] == ["Buy milk"]
        snapshot = stats.get_stats()
        assert (snapshot.hits, snapshot.misses, snapshot.errors) == (0, 0, 1)
        self.assert_invariant(stats)

    @pytest.mark.asyncio
    async def test_cache_unreachable_single_task(self, store, stats):
        """Single task reads also degrade to the store."""
        manager = TaskCacheManager(store, FailingCacheBackend(), stats)
        task = await store.create({"description": "Buy milk"})

        result = await manager.get_task(task.id)

        assert result.status is CacheStatus.ERROR
        assert result.value == task
        with pytest.raises(NotFoundError):
            await manager.get_task(9999)

    @pytest.mark.asyncio
    async def test_writes_succeed_when_invalidation_fails(self, store, stats):
        """Invalidation failures never fail a committed mutation."""
        manager = TaskCacheManager(store, FailingCacheBackend(), stats)

        task = await manager.create_task("Buy milk")
        updated = await manager.update_task(task.id, description="Buy oat milk")
        await manager.delete_task(task.id)

        assert updated.description == "Buy oat milk"
        assert await store.find_all() == []
        assert stats.get_stats().total == 0

    @pytest.mark.asyncio
    async def test_store_failure_after_cache_error_propagates(self, stats):
        """When both cache and store fail the store error surfaces."""
        manager = TaskCacheManager(FailingTaskStore(), FailingCacheBackend(), stats)

        with pytest.raises(StoreError):
            await manager.list_tasks()

        assert stats.get_stats().errors == 1

    @pytest.mark.asyncio
    async def test_store_failure_after_miss_propagates(self, cache, stats):
        """A store failure on a miss surfaces and nothing is cached."""
        manager = TaskCacheManager(FailingTaskStore(), cache, stats)

        with pytest.raises(StoreError):
            await manager.list_tasks()

        assert cache.operations == []
        assert stats.get_stats().misses == 1

    @pytest.mark.asyncio
    async def test_unreadable_entry_served_from_store(self, manager, store, cache, stats):
        """A corrupt cache entry is treated like a backend failure."""
        await store.create({"description": "Buy milk"})
        await cache.set(ALL_TASKS_KEY, "not json")

        result = await manager.list_tasks()

        assert result.status is CacheStatus.ERROR
        assert [t.description for t in result.value] == ["Buy milk"]
        assert stats.get_stats().errors == 1

    @pytest.mark.asyncio
    async def test_metrics_counters(self, store, cache, stats):
        """Cache events are mirrored into Prometheus counters."""
        metrics = MetricsCollector("tasks")
        manager = TaskCacheManager(store, cache, stats, metrics=metrics)

        await manager.list_tasks()
        await manager.list_tasks()

        registry = metrics.registry
        assert registry.get_sample_value("task_cache_misses_total", {"scope": "all"}) == 1.0
        assert registry.get_sample_value("task_cache_hits_total", {"scope": "all"}) == 1.0
        assert registry.get_sample_value(
            "task_store_duration_seconds_count", {"operation": "find_all"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_read_after_write_sequence_reflects_store(self, manager, store):
        """After any mutation sequence the next list read matches the store."""
        first = await manager.create_task("Buy milk")
        await manager.list_tasks()
        second = await manager.create_task("Walk dog")
        await manager.list_tasks()
        await manager.update_task(first.id, completed=True)
        await manager.list_tasks()
        await manager.delete_task(second.id)

        result = await manager.list_tasks()

        assert result.value == await store.find_all()

    @pytest.mark.asyncio
    async def test_concurrent_reads_keep_stats_consistent(self, manager, store, stats):
        """Concurrent list reads each count exactly once and return store data."""
        await store.create({"description": "Buy milk"})
        readers = 25

        results = await asyncio.gather(*(manager.list_tasks() for _ in range(readers)))

        assert all(r.status in (CacheStatus.HIT, CacheStatus.MISS) for r in results)
        assert all([t.description for t in r.value] == ["Buy milk"] for r in results)
        snapshot = stats.get_stats()
        assert snapshot.total == readers
        assert snapshot.errors == 0
        self.assert_invariant(stats)

    @pytest.mark.asyncio
    async def test_concurrent_reads_and_writes_settle_on_store(self, manager, store, stats):
        """After concurrent creates and reads the next list read matches the store."""
        await asyncio.gather(
            *(manager.create_task(f"Task {n}") for n in range(10)),
            *(manager.list_tasks() for _ in range(10)),
        )

        result = await manager.list_tasks()

        assert result.value == await store.find_all()
        assert len(result.value) == 10
        assert stats.get_stats().total == 11
        self.assert_invariant(stats)
