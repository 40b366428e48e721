"""
In-memory task store for local runs and tests.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from ..models import Task
from .base import TaskStore


class InMemoryTaskStore(TaskStore):
    """Dict-backed store with incrementing identifiers."""

    def __init__(self):
        self.logger = get_logger("tasks.persistence.memory")
        self._tasks: Dict[int, Task] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def find_all(self) -> List[Task]:
        # dicts keep insertion order
        return [task.model_copy() for task in self._tasks.values()]

    async def find_by_pk(self, task_id: int) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.model_copy() if task else None

    async def create(self, fields: Dict[str, Any]) -> Task:
        async with self._lock:
            now = datetime.now(timezone.utc)
            task = Task(
                id=self._next_id,
                description=fields["description"],
                completed=fields.get("completed", False),
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            self._next_id += 1

        self.logger.info("Task created", task_id=task.id)
        return task.model_copy()

    async def update(self, task_id: int, fields: Dict[str, Any]) -> Optional[Task]:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None

            changes = {k: v for k, v in fields.items() if k in ("description", "completed")}
            changes["updated_at"] = datetime.now(timezone.utc)
            task = task.model_copy(update=changes)
            self._tasks[task_id] = task

        self.logger.info("Task updated", task_id=task_id)
        return task.model_copy()

    async def destroy(self, task_id: int) -> bool:
        async with self._lock:
            deleted = self._tasks.pop(task_id, None) is not None

        if deleted:
            self.logger.info("Task deleted", task_id=task_id)
        return deleted

    async def health_check(self) -> bool:
        return True
