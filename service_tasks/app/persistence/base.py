"""
Task store interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import Task


class TaskStore(ABC):
    """Authoritative collection of tasks.

    Implementations raise ``StoreError`` when the underlying storage fails.
    """

    async def start(self):
        """Open connections and prepare schema."""

    async def stop(self):
        """Release connections."""

    @abstractmethod
    async def find_all(self) -> List[Task]:
        """All tasks in insertion order."""

    @abstractmethod
    async def find_by_pk(self, task_id: int) -> Optional[Task]:
        """One task, or None."""

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> Task:
        """Insert a task and return it with its assigned id."""

    @abstractmethod
    async def update(self, task_id: int, fields: Dict[str, Any]) -> Optional[Task]:
        """Apply ``fields`` to a task; None when it does not exist."""

    @abstractmethod
    async def destroy(self, task_id: int) -> bool:
        """Delete a task; False when it does not exist."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the store is reachable."""
