"""Prometheus metrics for TaskBrain."""

from prometheus_client import Counter, Histogram

TASK_MUTATIONS = Counter(
    "taskbrain_task_mutations_total",
    "Task mutations recorded in the event log",
    labelnames=["event_type"],
)

CACHE_LOOKUPS = Counter(
    "taskbrain_cache_lookups_total",
    "Task cache lookups",
    labelnames=["result"],
)

WEBHOOK_EVENTS = Counter(
    "taskbrain_webhook_events_total",
    "Inbound provider events by outcome",
    labelnames=["provider", "outcome"],
)

NOTIFICATIONS = Counter(
    "taskbrain_notifications_total",
    "Outward change notifications by outcome",
    labelnames=["outcome"],
)

SYNC_RUNS = Counter(
    "taskbrain_sync_runs_total",
    "Background sync iterations by outcome",
    labelnames=["outcome"],
)

AUTO_APPLIED = Counter(
    "taskbrain_auto_applied_total",
    "Intelligence suggestions written back without confirmation",
    labelnames=["kind"],
)

SCORING_LATENCY = Histogram(
    "taskbrain_scoring_latency_seconds",
    "Time spent scoring the active backlog",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)
