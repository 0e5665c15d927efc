"""HTTP boundary for TaskBrain."""

from taskbrain.api.app import create_app

__all__ = ["create_app"]
