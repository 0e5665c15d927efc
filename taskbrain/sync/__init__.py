"""Reactive sync with external task providers.

Inbound webhooks are verified, normalized and reconciled into the task
repository; changes are announced through the outward notifier. A
background poller covers events a webhook may have missed.
"""

from taskbrain.sync.notifier import ChangeNotifier
from taskbrain.sync.pipeline import SyncOutcome, SyncPipeline
from taskbrain.sync.poller import SyncPoller

__all__ = ["ChangeNotifier", "SyncOutcome", "SyncPipeline", "SyncPoller"]
