"""Heuristic intelligence over the task backlog.

Scoring, time-block scheduling, reschedule decisions, new-task analysis
and completion-pattern feedback. All mutations go back through the
TaskRepository.
"""

from taskbrain.intelligence.engine import IntelligenceEngine

__all__ = ["IntelligenceEngine"]
