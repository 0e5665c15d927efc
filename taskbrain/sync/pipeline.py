"""Reactive sync pipeline.

received -> signature-verified -> reconciled -> notified

Verification always happens before the body is parsed, so a bad
signature never reaches the repository. Reconciliation is idempotent:
creates are skipped when the external id is already known, completions
are skipped when the task is already completed, and updates, completions
and deletes are skipped when the external id is not known. Only events
that changed a local task are announced.
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

from taskbrain.config.models.sync import SyncConfig
from taskbrain.errors import (
    ConfigurationError,
    ConflictError,
    ValidationError,
    WebhookVerificationError,
)
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import AUTO_APPLIED, WEBHOOK_EVENTS
from taskbrain.sync.normalizers import ProviderEvent, SyncAction, normalize
from taskbrain.sync.notifier import ChangeNotifier
from taskbrain.sync.signatures import SIGNATURE_HEADERS, verify_signature
from taskbrain.tasks.models import TaskEventType, TaskSource, TaskView
from taskbrain.tasks.repository import TaskRepository

logger = get_logger(__name__)

SyncStatusLabel = Literal["created", "updated", "completed", "deleted", "noop", "ignored"]

PRIORITY_RECHECK_CONFIDENCE = 0.8


class SyncOutcome(BaseModel):
    """What reconciliation did with one provider event."""

    provider: str
    tag: str
    action: SyncAction | None = None
    status: SyncStatusLabel
    task_id: int | None = None
    applied_updates: dict[str, Any] = Field(default_factory=dict)


class SyncPipeline:
    """Verify, reconcile and announce provider events."""

    def __init__(
        self,
        repository: TaskRepository,
        engine: IntelligenceEngine,
        notifier: ChangeNotifier,
        config: SyncConfig,
    ) -> None:
        self._repository = repository
        self._engine = engine
        self._notifier = notifier
        self._config = config

    async def handle_webhook(
        self,
        provider: str,
        body: bytes,
        signature: str | None,
    ) -> SyncOutcome:
        """Process one inbound webhook.

        Raises:
            WebhookVerificationError: Signature missing, invalid, or no secret configured
            ValidationError: Unknown provider or malformed payload
        """
        if provider not in SIGNATURE_HEADERS:
            raise ValidationError(f"Unknown provider: {provider}")

        try:
            verify_signature(provider, body, signature, self._config.webhook_secret(provider))
        except ConfigurationError as e:
            # Reported to the sender as a plain verification failure
            logger.error("webhook_secret_missing", provider=provider, error=e.message)
            WEBHOOK_EVENTS.labels(provider=provider, outcome="rejected").inc()
            raise WebhookVerificationError(provider) from e
        except WebhookVerificationError:
            WEBHOOK_EVENTS.labels(provider=provider, outcome="rejected").inc()
            raise

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            WEBHOOK_EVENTS.labels(provider=provider, outcome="invalid").inc()
            raise ValidationError("Webhook body is not valid JSON") from e

        event = normalize(provider, payload)
        outcome = await self.reconcile(event)
        WEBHOOK_EVENTS.labels(provider=provider, outcome=outcome.status).inc()

        if outcome.status not in ("noop", "ignored"):
            event_type = event.tag if provider == "todoist" else f"{provider}:{event.tag}"
            self._notifier.notify(event_type, event.raw, self.event_context)
        return outcome

    async def reconcile(self, event: ProviderEvent) -> SyncOutcome:
        """Apply the minimal local mutation for a normalized event."""
        outcome = SyncOutcome(
            provider=event.provider.value,
            tag=event.tag,
            action=event.action,
            status="ignored",
        )
        if event.action is None:
            logger.warning("sync_unknown_event", provider=event.provider.value, tag=event.tag)
            return outcome
        if event.external_id is None:
            logger.warning("sync_event_missing_id", provider=event.provider.value, tag=event.tag)
            return outcome

        existing = await self._repository.find_by_external_id(event.external_id, event.provider)

        if event.action == "created":
            if existing is not None:
                return outcome.model_copy(update={"status": "noop", "task_id": existing.id})
            return await self._create(event, outcome)

        if existing is None:
            logger.debug(
                "sync_event_unmatched",
                provider=event.provider.value,
                external_id=event.external_id,
                action=event.action,
            )
            return outcome.model_copy(update={"status": "noop"})

        if event.action == "updated":
            return await self._update(existing, event, outcome)
        if event.action == "completed":
            if existing.completed:
                return outcome.model_copy(update={"status": "noop", "task_id": existing.id})
            await self._repository.complete(existing.id)
            await self._engine.update_patterns()
            logger.info("sync_task_completed", task_id=existing.id, provider=event.provider.value)
            return outcome.model_copy(update={"status": "completed", "task_id": existing.id})

        await self._repository.delete(existing.id)
        logger.info("sync_task_deleted", task_id=existing.id, provider=event.provider.value)
        return outcome.model_copy(update={"status": "deleted", "task_id": existing.id})

    async def _create(self, event: ProviderEvent, outcome: SyncOutcome) -> SyncOutcome:
        if event.provider == TaskSource.LINEAR and not self._assigned_to_user(event):
            logger.debug("sync_linear_issue_unassigned", external_id=event.external_id)
            return outcome

        try:
            task = await self._repository.create(
                {**event.fields, "external_id": event.external_id, "source": event.provider}
            )
        except ConflictError:
            # A concurrent delivery of the same event won the insert
            existing = await self._repository.find_by_external_id(
                event.external_id, event.provider
            )
            return outcome.model_copy(
                update={"status": "noop", "task_id": existing.id if existing else None}
            )

        applied: dict[str, Any] = {}
        analysis = await self._engine.analyze_new_task(task)
        if analysis.auto_apply and analysis.updates:
            if await self._repository.update(task.id, analysis.updates) is not None:
                applied = analysis.updates
                AUTO_APPLIED.labels(kind="analysis").inc()
                logger.info(
                    "analysis_auto_applied",
                    task_id=task.id,
                    fields=sorted(applied),
                    mean_confidence=analysis.mean_confidence,
                )
        return outcome.model_copy(
            update={"status": "created", "task_id": task.id, "applied_updates": applied}
        )

    async def _update(
        self,
        existing: TaskView,
        event: ProviderEvent,
        outcome: SyncOutcome,
    ) -> SyncOutcome:
        updated = await self._repository.update(existing.id, event.fields)
        if updated is None:
            return outcome.model_copy(update={"status": "noop"})

        applied: dict[str, Any] = {}
        analysis = await self._engine.analyze_priority(updated)
        if (
            analysis.confidence > PRIORITY_RECHECK_CONFIDENCE
            and analysis.suggested_priority != updated.priority
        ):
            if await self._repository.update(
                updated.id, {"priority": analysis.suggested_priority}
            ) is not None:
                applied = {"priority": analysis.suggested_priority}
                AUTO_APPLIED.labels(kind="priority").inc()
                logger.info(
                    "priority_auto_applied",
                    task_id=updated.id,
                    previous=updated.priority,
                    suggested=analysis.suggested_priority,
                    confidence=analysis.confidence,
                )
        return outcome.model_copy(
            update={"status": "updated", "task_id": existing.id, "applied_updates": applied}
        )

    def _assigned_to_user(self, event: ProviderEvent) -> bool:
        user_id = self._config.linear_user_id
        return bool(user_id) and event.assignee_id == user_id

    async def upsert(self, source: TaskSource, external_id: str, fields: dict[str, Any]) -> str:
        """Create or update a polled task.

        Returns "created", "updated", or "skipped" when a concurrent writer
        inserted the task and it can no longer be found.
        """
        existing = await self._repository.find_by_external_id(external_id, source)
        if existing is None:
            try:
                await self._repository.create(
                    {**fields, "external_id": external_id, "source": source}
                )
                return "created"
            except ConflictError:
                existing = await self._repository.find_by_external_id(external_id, source)
                if existing is None:
                    return "skipped"
                logger.debug(
                    "sync_upsert_conflict", provider=source.value, external_id=external_id
                )
        await self._repository.update(existing.id, fields)
        return "updated"

    async def event_context(self) -> dict[str, Any]:
        """Backlog snapshot attached to outward notifications."""
        activity = await self._repository.recent_activity(5)
        return {
            "total_active_tasks": await self._repository.count_active(),
            "overdue_count": await self._repository.count_overdue(),
            "today_count": await self._repository.count_due_today(),
            "recent_completions": [
                entry.model_dump(mode="json")
                for entry in activity
                if entry.event_type == TaskEventType.COMPLETED
            ],
            "productivity_score": await self._engine.productivity_score(),
        }
