"""
Task store adapters: PostgreSQL for deployments, in-memory for local runs.
"""

from .base import TaskStore
from .memory import InMemoryTaskStore
from .postgres import PostgreSQLTaskStore

__all__ = ["TaskStore", "InMemoryTaskStore", "PostgreSQLTaskStore"]
