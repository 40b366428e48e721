"""
Tasks service.
Task CRUD API with cache-aside reads and cache statistics.
"""

from typing import Dict, Optional

from fastapi import Response, status

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .cache import (
    CacheBackend, CacheStats, CacheStatsSnapshot, InMemoryCacheBackend,
    RedisCacheBackend, TaskCacheManager,
)
from .models import (
    CacheStatsResetResponse, CacheStatsResponse, Task, TaskCreateRequest,
    TaskListResponse, TaskUpdateRequest,
)
from .persistence import InMemoryTaskStore, PostgreSQLTaskStore, TaskStore


STATS_DESCRIPTIONS = {
    "hits": "Reads served from the cache",
    "misses": "Reads not found in the cache and loaded from the database",
    "errors": "Reads where the cache failed and the database was used directly",
    "total": "All cache reads (hits + misses + errors)",
    "hit_rate": "Share of reads served from the cache",
    "miss_rate": "Share of reads loaded from the database after a miss",
}


class TasksService(BaseService):
    """Tasks service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[TaskStore] = None,
        cache: Optional[CacheBackend] = None,
        stats: Optional[CacheStats] = None,
    ):
        super().__init__("tasks", 3000, config=config)

        self.store = store if store is not None else self._build_store()
        self.cache = cache if cache is not None else self._build_cache()
        self.stats = stats if stats is not None else CacheStats()
        self.cache_manager = TaskCacheManager(
            self.store,
            self.cache,
            self.stats,
            metrics=self.metrics,
            use_ttl=self.config.cache_use_ttl,
            list_ttl=self.config.cache_list_ttl_seconds,
            item_ttl=self.config.cache_item_ttl_seconds,
        )

        self._setup_tasks_routes()

    def _build_store(self) -> TaskStore:
        if self.config.task_store == "memory":
            return InMemoryTaskStore()
        return PostgreSQLTaskStore(self.config.postgres_dsn)

    def _build_cache(self) -> CacheBackend:
        if self.config.cache_backend == "memory":
            return InMemoryCacheBackend()
        return RedisCacheBackend(self.config.redis_url, socket_timeout=self.config.redis_socket_timeout)

    def _setup_tasks_routes(self):
        """Set up task and cache statistics routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "tasks",
                "message": "Tasks Service",
                "version": "1.0.0",
                "cache_backend": self.cache.name,
            }

        @self.app.get("/tasks", response_model=TaskListResponse)
        async def list_tasks():
            """List all tasks."""
            result = await self.cache_manager.list_tasks()
            return TaskListResponse(cache=result.status, data=result.value)

        @self.app.get("/tasks/{task_id}", response_model=Task)
        async def get_task(task_id: int, response: Response):
            """Get a single task; the X-Cache header tells how it was served."""
            result = await self.cache_manager.get_task(task_id)
            response.headers["X-Cache"] = result.status.value
            return result.value

        @self.app.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
        async def create_task(request: TaskCreateRequest):
            """Create a task."""
            return await self.cache_manager.create_task(request.description)

        @self.app.put("/tasks/{task_id}", response_model=Task)
        async def update_task(task_id: int, request: TaskUpdateRequest):
            """Update a task."""
            return await self.cache_manager.update_task(
                task_id,
                description=request.description,
                completed=request.completed,
            )

        @self.app.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
        async def delete_task(task_id: int):
            """Delete a task."""
            await self.cache_manager.delete_task(task_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        @self.app.get("/cache/stats", response_model=CacheStatsResponse)
        async def get_cache_stats():
            """Get cache hit/miss/error statistics."""
            return self._stats_response(self.stats.get_stats())

        @self.app.post("/cache/stats/reset", response_model=CacheStatsResetResponse)
        async def reset_cache_stats():
            """Reset cache statistics."""
            self.stats.reset()
            return CacheStatsResetResponse(
                message="Cache statistics reset",
                stats=self._stats_response(self.stats.get_stats()),
            )

        @self.app.post("/cache/clear")
        async def clear_cache():
            """Drop every cached task entry; an unreachable cache is a 503."""
            await self.cache.clear()
            self.logger.info("Task cache cleared", backend=self.cache.name)
            return {"message": "Cache cleared", "backend": self.cache.name}

    def _stats_response(self, snapshot: CacheStatsSnapshot) -> CacheStatsResponse:
        return CacheStatsResponse(
            backend=self.cache.name,
            hits=snapshot.hits,
            misses=snapshot.misses,
            errors=snapshot.errors,
            total=snapshot.total,
            hit_rate=f"{snapshot.hit_rate:.2f}%",
            miss_rate=f"{snapshot.miss_rate:.2f}%",
            description=STATS_DESCRIPTIONS,
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check tasks service dependencies."""
        return {
            "store": "ok" if await self.store.health_check() else "error",
            "cache": "ok" if await self.cache.health_check() else "error",
        }

    async def start(self):
        """Start tasks service components."""
        await self.store.start()
        await self.cache.start()
        self.logger.info("Tasks service started", store=type(self.store).__name__, cache=self.cache.name)

    async def stop(self):
        """Stop tasks service components."""
        await self.cache.stop()
        await self.store.stop()
        self.logger.info("Tasks service stopped")


def create_app():
    """Create tasks service application."""
    service = TasksService()
    return service.app


if __name__ == "__main__":
    service = TasksService()
    service.run()
