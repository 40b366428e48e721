"""
Unit tests for the PostgreSQL task store error reporting.
"""

from unittest.mock import MagicMock

import asyncpg
import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.errors import StoreError
from service_tasks.app.cache import InMemoryCacheBackend
from service_tasks.app.main import TasksService
from service_tasks.app.persistence import PostgreSQLTaskStore


class TestPostgreSQLTaskStore:
    """Test cases for PostgreSQLTaskStore."""

    @pytest.fixture
    def db_error(self):
        """Server error whose text names internal hosts and tables."""
        return asyncpg.PostgresError('relation "tasks" does not exist at db-internal-7:5432')

    @pytest.fixture
    def store(self, db_error):
        """Create PostgreSQLTaskStore over a pool whose connections fail."""
        store = PostgreSQLTaskStore("postgresql://tasks@localhost/tasks")
        store.pool = MagicMock()
        store.pool.acquire.side_effect = db_error
        return store

    @pytest.mark.asyncio
    async def test_find_all_error_keeps_driver_text_in_details(self, store, db_error):
        """The driver message goes to details, not to the client-facing message."""
        with pytest.raises(StoreError) as exc_info:
            await store.find_all()

        assert exc_info.value.message == "Failed to load tasks"
        assert exc_info.value.details == {"error": str(db_error)}
        assert exc_info.value.__cause__ is db_error

    @pytest.mark.asyncio
    async def test_item_errors_carry_task_id(self, store):
        """Per-task failures name the task in details only."""
        with pytest.raises(StoreError) as exc_info:
            await store.update(7, {"completed": True})

        assert exc_info.value.message == "Failed to update task"
        assert exc_info.value.details["task_id"] == 7

    @pytest.mark.asyncio
    async def test_not_started(self):
        """Using the store before start is a store error."""
        with pytest.raises(StoreError):
            await PostgreSQLTaskStore("postgresql://tasks@localhost/tasks").find_all()

    def test_database_error_text_not_returned_to_client(self, store):
        """A failing database yields a generic 500 body."""
        service = TasksService(
            get_config("tasks", 3000, cache_backend="memory"),
            store=store,
            cache=InMemoryCacheBackend(),
        )
        # No lifespan: the mocked pool must not be replaced by a real one
        client = TestClient(service.app)

        response = client.get("/tasks")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to load tasks"}
        assert "db-internal-7" not in response.text
