"""
PostgreSQL persistence layer for Tasks Service.
"""

from typing import Any, Dict, List, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import StoreError
from ..models import Task
from .base import TaskStore

# Connection loss, protocol and server-side errors
STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgreSQLTaskStore(TaskStore):
    """PostgreSQL task store."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("tasks.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL persistence started")

        except STORE_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise StoreError(
                "Failed to start PostgreSQL persistence", details={"error": str(e)}
            ) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id SERIAL PRIMARY KEY,
                    description TEXT NOT NULL,
                    completed BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise StoreError("PostgreSQL persistence not started")
        return self.pool

    async def find_all(self) -> List[Task]:
        try:
            async with self._require_pool().acquire() as conn:
                rows = await conn.fetch("SELECT * FROM tasks ORDER BY id")
        except STORE_ERRORS as e:
            self.logger.error("Error loading tasks", error=str(e))
            raise StoreError("Failed to load tasks", details={"error": str(e)}) from e

        return [self._row_to_task(row) for row in rows]

    async def find_by_pk(self, task_id: int) -> Optional[Task]:
        try:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM tasks WHERE id = $1", task_id)
        except STORE_ERRORS as e:
            self.logger.error("Error loading task", task_id=task_id, error=str(e))
            raise StoreError(
                "Failed to load task", details={"task_id": task_id, "error": str(e)}
            ) from e

        return self._row_to_task(row) if row else None

    async def create(self, fields: Dict[str, Any]) -> Task:
        try:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow("""
                    INSERT INTO tasks (description, completed)
                    VALUES ($1, $2)
                    RETURNING *
                """, fields["description"], fields.get("completed", False))
        except STORE_ERRORS as e:
            self.logger.error("Error creating task", error=str(e))
            raise StoreError("Failed to create task", details={"error": str(e)}) from e

        self.logger.info("Task created", task_id=row["id"])
        return self._row_to_task(row)

    async def update(self, task_id: int, fields: Dict[str, Any]) -> Optional[Task]:
        try:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow("""
                    UPDATE tasks SET
                        description = COALESCE($2, description),
                        completed = COALESCE($3, completed),
                        updated_at = NOW()
                    WHERE id = $1
                    RETURNING *
                """, task_id, fields.get("description"), fields.get("completed"))
        except STORE_ERRORS as e:
            self.logger.error("Error updating task", task_id=task_id, error=str(e))
            raise StoreError(
                "Failed to update task", details={"task_id": task_id, "error": str(e)}
            ) from e

        if row is None:
            return None

        self.logger.info("Task updated", task_id=task_id)
        return self._row_to_task(row)

    async def destroy(self, task_id: int) -> bool:
        try:
            async with self._require_pool().acquire() as conn:
                result = await conn.execute("DELETE FROM tasks WHERE id = $1", task_id)
        except STORE_ERRORS as e:
            self.logger.error("Error deleting task", task_id=task_id, error=str(e))
            raise StoreError(
                "Failed to delete task", details={"task_id": task_id, "error": str(e)}
            ) from e

        # Command tag is "DELETE <count>"
        deleted = result.split()[-1] != "0"
        if deleted:
            self.logger.info("Task deleted", task_id=task_id)
        return deleted

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except STORE_ERRORS:
            return False

    def _row_to_task(self, row: asyncpg.Record) -> Task:
        """Convert database row to Task."""
        return Task(
            id=row["id"],
            description=row["description"],
            completed=row["completed"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
