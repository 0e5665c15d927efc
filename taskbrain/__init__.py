"""TaskBrain: a task backlog with heuristic scheduling and provider sync."""

__version__ = "0.1.0"
