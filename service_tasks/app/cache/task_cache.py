"""
Cache-aside access to tasks.

Reads check the cache first and fall back to the store, writing fresh
results back. Writes go to the store first and then invalidate the
affected entries. Cache failures never fail a request; store failures do.
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TYPE_CHECKING, TypeVar

from pydantic import TypeAdapter

from shared.logging import get_logger
from shared.errors import CacheCommunicationError, NotFoundError, ValidationError
from ..models import CacheStatus, Task
from ..persistence.base import TaskStore
from .backend import CacheBackend, LookupState
from .stats import CacheStats

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


ALL_TASKS_KEY = "tasks:all"

DEFAULT_LIST_TTL = 3600
DEFAULT_ITEM_TTL = 60

T = TypeVar("T")

_task_list = TypeAdapter(List[Task])


def task_key(task_id: int) -> str:
    """Cache key for a single task."""
    return f"tasks:{task_id}"


@dataclass(frozen=True)
class CachedRead(Generic[T]):
    """A read result tagged with how it was served."""
    status: CacheStatus
    value: T


class TaskCacheManager:
    """Cache-aside orchestrator over a task store and a cache backend."""

    def __init__(
        self,
        store: TaskStore,
        cache: CacheBackend,
        stats: CacheStats,
        *,
        metrics: Optional["MetricsCollector"] = None,
        use_ttl: bool = True,
        list_ttl: int = DEFAULT_LIST_TTL,
        item_ttl: int = DEFAULT_ITEM_TTL,
    ):
        self.store = store
        self.cache = cache
        self.stats = stats
        self.metrics = metrics
        self.use_ttl = use_ttl
        self.list_ttl = list_ttl
        self.item_ttl = item_ttl
        self.logger = get_logger("tasks.cache_manager")

    # Reads

    async def list_tasks(self) -> CachedRead[List[Task]]:
        """All tasks, from cache when possible."""
        return await self._read(
            ALL_TASKS_KEY,
            scope="all",
            load=lambda: self._timed("find_all", self.store.find_all()),
            dump=lambda tasks: json.dumps([t.model_dump(mode="json") for t in tasks]),
            parse=_task_list.validate_json,
            ttl=self.list_ttl,
        )

    async def get_task(self, task_id: int) -> CachedRead[Task]:
        """One task, from cache when possible.

        Raises NotFoundError when the store has no such task; absence is
        not cached.
        """
        return await self._read(
            task_key(task_id),
            scope="task",
            load=lambda: self._timed("find_by_pk", self.store.find_by_pk(task_id)),
            dump=lambda task: task.model_dump_json(),
            parse=Task.model_validate_json,
            ttl=self.item_ttl,
            not_found=f"Task {task_id} not found",
        )

    async def _read(
        self,
        key: str,
        *,
        scope: str,
        load: Callable[[], Awaitable[Optional[T]]],
        dump: Callable[[T], str],
        parse: Callable[[str], T],
        ttl: int,
        not_found: Optional[str] = None,
    ) -> CachedRead[T]:
        lookup = await self.cache.get(key)

        if lookup.state is LookupState.HIT:
            try:
                value = parse(lookup.value)
            except ValueError as e:
                # Unreadable entry: serve from the store like a backend failure
                self._record_error(key, scope, e)
                return CachedRead(CacheStatus.ERROR, await self._load_or_404(load, not_found))

            self.stats.record_hit(key)
            self._count("task_cache_hits_total", scope)
            return CachedRead(CacheStatus.HIT, value)

        if lookup.state is LookupState.ERROR:
            self._record_error(key, scope, lookup.cause)
            return CachedRead(CacheStatus.ERROR, await self._load_or_404(load, not_found))

        self.stats.record_miss(key)
        self._count("task_cache_misses_total", scope)
        value = await self._load_or_404(load, not_found)

        try:
            await self.cache.set(key, dump(value), ttl if self.use_ttl else None)
        except CacheCommunicationError as e:
            self.logger.warning("Failed to populate cache", key=key, error=e.message)

        return CachedRead(CacheStatus.MISS, value)

    async def _load_or_404(self, load: Callable[[], Awaitable[Optional[T]]], not_found: Optional[str]) -> T:
        value = await load()
        if value is None:
            raise NotFoundError(not_found or "Not found")
        return value

    # Writes

    async def create_task(self, description: Optional[str]) -> Task:
        """Create a task and invalidate the collection entry."""
        if description is None or not description.strip():
            raise ValidationError("Description is required")

        task = await self._timed("create", self.store.create({"description": description, "completed": False}))
        await self._invalidate(ALL_TASKS_KEY)
        return task

    async def update_task(
        self,
        task_id: int,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        """Update a task and invalidate its entry and the collection entry."""
        if description is not None and not description.strip():
            raise ValidationError("Description must not be empty")

        fields: Dict[str, Any] = {}
        if description is not None:
            fields["description"] = description
        if completed is not None:
            fields["completed"] = completed

        task = await self._timed("update", self.store.update(task_id, fields))
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        await self._invalidate(ALL_TASKS_KEY, task_key(task_id))
        return task

    async def delete_task(self, task_id: int) -> None:
        """Delete a task, invalidate the collection entry and drop its own entry."""
        deleted = await self._timed("destroy", self.store.destroy(task_id))
        if not deleted:
            raise NotFoundError(f"Task {task_id} not found")

        await self._invalidate(ALL_TASKS_KEY)
        # Ids are never reused; drop the entry instead of keeping a tombstone
        await self._invalidate(task_key(task_id), remove=True)

    async def _invalidate(self, *keys: str, remove: bool = False) -> None:
        """Invalidate entries after a committed store mutation.

        Failures are logged only; the store already holds the new state and
        TTL bounds how long a stale entry can survive.
        """
        for key in keys:
            try:
                if remove:
                    await self.cache.delete(key)
                else:
                    await self.cache.invalidate(key)
                self.logger.debug("Invalidated cache entry", key=key, removed=remove)
            except CacheCommunicationError as e:
                self.logger.error("Cache invalidation failed", key=key, error=e.message)

    # Helpers

    async def _timed(self, operation: str, call: Awaitable[T]) -> T:
        if self.metrics is None:
            return await call
        with self.metrics.time_operation("task_store_duration_seconds", operation=operation):
            return await call

    def _record_error(self, key: str, scope: str, cause: Optional[BaseException]) -> None:
        self.stats.record_error(key, cause)
        self._count("task_cache_errors_total", scope)

    def _count(self, metric_name: str, scope: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, scope=scope)
