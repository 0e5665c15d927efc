"""Task store implementations."""

from taskbrain.tasks.store import TaskStore
from taskbrain.tasks.stores.inmemory import InMemoryTaskStore
from taskbrain.tasks.stores.postgres import PostgresTaskStore

__all__ = [
    "InMemoryTaskStore",
    "PostgresTaskStore",
    "TaskStore",
]
