"""IntelligenceEngine: scoring, scheduling and reschedule decisions.

The engine reads through the TaskRepository and never writes to storage
directly: the two auto-apply paths (reschedule and completion summaries)
go through the repository so the event log stays the single audit trail.
Calendar availability comes from an injected CalendarSource.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from taskbrain.config.models.intelligence import IntelligenceConfig
from taskbrain.errors import IntegrationError, ValidationError
from taskbrain.integrations.ports import CalendarSource, NullCalendarSource
from taskbrain.intelligence.analysis import (
    analyze_priority,
    detect_dependencies,
    estimate_duration,
    recommend_context,
    suggest_breakdown,
    suggest_optimal_time,
)
from taskbrain.intelligence.models import (
    BatchRescheduleItem,
    CompletionPatterns,
    DailySchedule,
    OverdueAnalysis,
    PriorityAnalysis,
    PrioritySuggestions,
    Recommendations,
    RescheduleConflict,
    RescheduleResult,
    RescheduleSuggestion,
    ScoredTask,
    TaskAnalysis,
    TaskImpact,
)
from taskbrain.intelligence.patterns import (
    COMPLETION_SUMMARY,
    COMPLETION_TIME,
    CompletionProfile,
)
from taskbrain.intelligence.reschedule import find_open_days, fits, impact_score
from taskbrain.intelligence.scheduling import (
    day_loads,
    energy_optimization,
    estimate_workload,
    place_tasks,
    task_minutes,
)
from taskbrain.intelligence.scoring import (
    ScoringContext,
    energy_band,
    score_task,
    time_of_day_band,
)
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import AUTO_APPLIED, SCORING_LATENCY
from taskbrain.tasks.dates import parse_date
from taskbrain.tasks.models import Task, TaskEventType, TaskView, UserPattern
from taskbrain.tasks.repository import TaskRepository

logger = get_logger(__name__)

TOP_N = 3
ENERGY_MATCHED_LIMIT = 5
OVERDUE_PENALTY = 5
CONSISTENCY_BONUS = 10
CONSISTENCY_MIN_SAMPLES = 5

HOURLY_TIPS: tuple[tuple[range, str], ...] = (
    (range(6, 12), "Tackle your most demanding task while energy is high"),
    (range(12, 14), "Use the post-lunch dip for reviews and quick wins"),
    (range(14, 18), "Batch calls and collaborative work this afternoon"),
    (range(18, 23), "Wrap up small tasks and plan tomorrow"),
)
LATE_TIP = "Rest; schedule deep work for the morning"


def _sorted_by_score(scored: Iterable[ScoredTask]) -> list[ScoredTask]:
    # sorted() is stable, so equal scores keep insertion (id) order
    return sorted(scored, key=lambda s: s.score, reverse=True)


class IntelligenceEngine:
    """Heuristic scoring, scheduling and rescheduling over the task backlog."""

    def __init__(
        self,
        repository: TaskRepository,
        calendar: CalendarSource | None = None,
        config: IntelligenceConfig | None = None,
    ) -> None:
        self._repository = repository
        self._calendar = calendar or NullCalendarSource()
        self._config = config or IntelligenceConfig()

    def _now(self) -> datetime:
        return self._repository.now()

    def _parse_date(self, value: Any) -> date:
        try:
            return parse_date(value, self._now())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}") from e

    def _ranked(
        self,
        tasks: list[TaskView],
        now: datetime,
        context: ScoringContext,
    ) -> list[ScoredTask]:
        with SCORING_LATENCY.time():
            return _sorted_by_score(
                ScoredTask(task=task, score=score_task(task, now, context)) for task in tasks
            )

    # ------------------------------------------------------------------
    # Scoring and priorities
    # ------------------------------------------------------------------

    async def score(self, task: Task, now: datetime | None = None) -> int:
        """Score a single task against the current active backlog."""
        active = await self._repository.active_tasks()
        return score_task(task, now or self._now(), ScoringContext.from_tasks(active))

    async def suggest_priorities(self, now: datetime | None = None) -> PrioritySuggestions:
        """Rank active tasks and slice the ranking into views."""
        now = now or self._now()
        active = await self._repository.active_tasks()
        ranked = self._ranked(active, now, ScoringContext.from_tasks(active))

        band = energy_band(now.hour)
        context_band = time_of_day_band(now.hour)
        return PrioritySuggestions(
            high=ranked[:TOP_N],
            medium=ranked[TOP_N : TOP_N * 2],
            energy_matched=[s for s in ranked if s.task.energy_level in band][
                :ENERGY_MATCHED_LIMIT
            ],
            context_based=[s for s in ranked if s.task.energy_level in context_band][:TOP_N],
            generated_at=now,
        )

    # ------------------------------------------------------------------
    # Daily schedule
    # ------------------------------------------------------------------

    async def suggest_daily_schedule(self, day: Any = None) -> DailySchedule:
        """Place active tasks due within the horizon of `day` into time blocks.

        Tasks without a due date are also eligible. Overdue tasks are
        included since their due date falls before the horizon end.

        Raises:
            ValidationError: If `day` cannot be parsed
        """
        now = self._now()
        target = self._parse_date(day) if day is not None else now.date()
        horizon = target + timedelta(days=self._config.schedule_horizon_days)

        active = await self._repository.active_tasks()
        eligible = [
            task for task in active if task.due_date is None or task.due_date.date() <= horizon
        ]
        ranked = self._ranked(eligible, now, ScoringContext.from_tasks(active))
        buckets = place_tasks(ranked)

        calendar_available = True
        try:
            events = await self._calendar.get_events_for_date(target)
        except IntegrationError as e:
            logger.warning(
                "calendar_unavailable",
                integration=e.integration_name,
                error=str(e),
            )
            events = []
            calendar_available = False

        return DailySchedule(
            date=target,
            morning=buckets["morning"],
            afternoon=buckets["afternoon"],
            evening=buckets["evening"],
            buffer=buckets["buffer"],
            estimated_workload=estimate_workload(buckets),
            energy_optimization=energy_optimization(buckets),
            calendar_events=events,
            calendar_available=calendar_available,
        )

    # ------------------------------------------------------------------
    # Overdue and reschedule
    # ------------------------------------------------------------------

    async def overdue_analysis(self) -> OverdueAnalysis:
        """Aggregate the overdue backlog with read-only reschedule suggestions."""
        now = self._now()
        today = now.date()
        active = await self._repository.active_tasks()
        overdue = [t for t in active if t.due_date is not None and t.due_date < now]
        if not overdue:
            return OverdueAnalysis(
                total_overdue=0,
                critical_overdue=0,
                avg_overdue_days=0.0,
                blocked_dependents=0,
            )

        overdue_ids = {t.id for t in overdue}
        blocked = [
            t for t in active if t.id not in overdue_ids and overdue_ids & set(t.dependencies)
        ]
        days_overdue = [(now - t.due_date).total_seconds() / 86400 for t in overdue]

        capacity = self._config.day_capacity_minutes
        suggestions = []
        for task in overdue:
            loads = day_loads(active, exclude_id=task.id)
            open_days = find_open_days(loads, today, task_minutes(task), capacity, limit=1)
            if not open_days:
                continue
            suggested = open_days[0]
            suggestions.append(
                RescheduleSuggestion(
                    task_id=task.id,
                    content=task.content,
                    current_due_date=task.due_date,
                    suggested_date=suggested,
                    impact_score=impact_score(
                        today, suggested, loads.get(suggested, 0), capacity, task.priority
                    ),
                )
            )

        projects = Counter(t.project_id or "none" for t in overdue)
        return OverdueAnalysis(
            total_overdue=len(overdue),
            critical_overdue=sum(1 for t in overdue if t.priority >= 4),
            avg_overdue_days=round(sum(days_overdue) / len(days_overdue), 1),
            blocked_dependents=len(blocked),
            reschedule_suggestions=suggestions,
            impact_analysis={
                "project_distribution": dict(projects),
                "oldest_overdue_days": round(max(days_overdue), 1),
            },
        )

    async def smart_reschedule(self, task_id: int, new_date: Any) -> RescheduleResult | None:
        """Evaluate moving a task to `new_date`, applying it when safe.

        The due date is written only when the day has no conflicts and the
        impact score clears the auto-apply threshold; otherwise the call is
        advisory. Returns None when the task does not exist.

        Raises:
            ValidationError: If `new_date` cannot be parsed
        """
        target = self._parse_date(new_date)
        task = await self._repository.get(task_id)
        if task is None:
            return None

        today = self._now().date()
        capacity = self._config.day_capacity_minutes
        active = await self._repository.active_tasks()
        loads = day_loads(active, exclude_id=task.id)
        minutes = task_minutes(task)

        conflicts: list[RescheduleConflict] = []
        if not fits(loads, target, minutes, capacity):
            conflicts = [
                RescheduleConflict(
                    task_id=other.id,
                    content=other.content,
                    estimated_duration=task_minutes(other),
                )
                for other in active
                if other.id != task.id
                and other.due_date is not None
                and other.due_date.date() == target
            ]

        alternatives: list[date] = []
        if conflicts:
            alternatives = find_open_days(
                loads,
                target + timedelta(days=1),
                minutes,
                capacity,
                limit=self._config.max_alternatives,
            )

        score = impact_score(today, target, loads.get(target, 0), capacity, task.priority)
        result = RescheduleResult(
            task_id=task.id,
            requested_date=target,
            impact_score=score,
            conflicts=conflicts,
            alternatives=alternatives,
            feasible=not conflicts,
            task=task,
        )
        if conflicts or score <= self._config.reschedule_auto_apply_threshold:
            return result

        at = task.due_date.timetz() if task.due_date is not None else time(0, 0, tzinfo=UTC)
        updated = await self._repository.update(
            task.id, {"due_date": datetime.combine(target, at)}
        )
        if updated is None:
            # Deleted between read and write
            return None

        AUTO_APPLIED.labels(kind="reschedule").inc()
        logger.info(
            "reschedule_auto_applied",
            task_id=task.id,
            new_date=target.isoformat(),
            impact_score=score,
        )
        return result.model_copy(update={"rescheduled": True, "task": updated})

    async def reschedule_batch(
        self, requests: Iterable[Mapping[str, Any]]
    ) -> list[BatchRescheduleItem]:
        """Run smart_reschedule per item; one failure does not stop the rest."""
        results = []
        for request in requests:
            task_id = request.get("task_id")
            if not isinstance(task_id, int):
                results.append(
                    BatchRescheduleItem(task_id=-1, success=False, error="task_id is required")
                )
                continue
            try:
                outcome = await self.smart_reschedule(task_id, request.get("new_date"))
            except ValidationError as e:
                results.append(BatchRescheduleItem(task_id=task_id, success=False, error=e.message))
                continue
            if outcome is None:
                results.append(
                    BatchRescheduleItem(task_id=task_id, success=False, error="Task not found")
                )
            else:
                results.append(BatchRescheduleItem(task_id=task_id, success=True, result=outcome))
        return results

    # ------------------------------------------------------------------
    # New-task analysis
    # ------------------------------------------------------------------

    async def analyze_priority(self, task: Task) -> PriorityAnalysis:
        return analyze_priority(task, self._now())

    async def analyze_new_task(self, task: Task) -> TaskAnalysis:
        """Run the sub-analyses and decide whether to auto-apply.

        Auto-apply requires the mean confidence of the priority, duration,
        optimal-time, dependency and breakdown analyses to exceed the
        threshold. Each update field is then gated by its own confidence.
        """
        now = self._now()
        active = await self._repository.active_tasks()
        profile = await self._completion_profile()

        priority = analyze_priority(task, now)
        duration = estimate_duration(task)
        optimal_time = suggest_optimal_time(profile)
        dependencies = detect_dependencies(task, active)
        breakdown = suggest_breakdown(task)
        context = recommend_context(task)

        confidences = [
            priority.confidence,
            duration.confidence,
            optimal_time.confidence,
            dependencies.confidence,
            breakdown.confidence,
        ]
        mean = round(sum(confidences) / len(confidences), 3)
        auto_apply = mean > self._config.analysis_auto_apply_threshold

        updates: dict[str, Any] = {}
        if auto_apply:
            if priority.confidence > 0.8 and priority.suggested_priority != task.priority:
                updates["priority"] = priority.suggested_priority
            if duration.confidence > 0.7 and task.estimated_duration is None:
                updates["estimated_duration"] = duration.estimated_minutes
            if context.confidence > 0.7:
                merged = list(dict.fromkeys([*task.context_tags, *context.tags]))
                if merged != task.context_tags:
                    updates["context_tags"] = merged

        logger.debug(
            "task_analyzed",
            task_id=task.id,
            mean_confidence=mean,
            auto_apply=auto_apply,
            update_fields=sorted(updates),
        )
        return TaskAnalysis(
            task_id=task.id,
            priority=priority,
            duration=duration,
            optimal_time=optimal_time,
            dependencies=dependencies,
            breakdown=breakdown,
            context=context,
            mean_confidence=mean,
            auto_apply=auto_apply,
            updates=updates,
        )

    async def analyze_task_impact(self, task_id: int) -> TaskImpact | None:
        """Dependents, project siblings and dependents due before this task."""
        task = await self._repository.get(task_id)
        if task is None:
            return None
        dependents = await self._repository.dependents(task_id)
        active = await self._repository.active_tasks()
        siblings = [
            t for t in active if task.project_id and t.project_id == task.project_id and t.id != task.id
        ]
        cascade = [
            d.id
            for d in dependents
            if task.due_date is not None and d.due_date is not None and d.due_date < task.due_date
        ]
        return TaskImpact(
            task_id=task.id,
            dependents_count=len(dependents),
            project_task_count=len(siblings),
            deadline_cascade=cascade,
        )

    # ------------------------------------------------------------------
    # Patterns and productivity
    # ------------------------------------------------------------------

    async def update_patterns(self) -> UserPattern | None:
        """Roll completions in the trailing window into a summary pattern."""
        since = self._now() - timedelta(days=self._config.pattern_window_days)
        events = await self._repository.events(TaskEventType.COMPLETED, since=since)
        if not events:
            return None
        profile = CompletionProfile.from_events(events)
        pattern = await self._repository.record_pattern(
            COMPLETION_SUMMARY,
            profile.to_summary(),
            confidence=profile.summary_confidence(),
        )
        logger.info(
            "patterns_updated",
            completions=profile.completions,
            confidence=pattern.confidence_score,
        )
        return pattern

    async def _completion_profile(self) -> CompletionProfile | None:
        since = self._now() - timedelta(days=self._config.pattern_window_days)
        summaries = await self._repository.patterns(COMPLETION_SUMMARY, since=since)
        if summaries:
            return CompletionProfile.from_summary(summaries[-1].pattern_data)
        rows = await self._repository.patterns(COMPLETION_TIME, since=since)
        if not rows:
            return None
        return CompletionProfile.from_patterns(rows)

    async def analyze_completion_patterns(self) -> CompletionPatterns:
        profile = await self._completion_profile()
        if profile is None:
            return CompletionPatterns()
        return profile.to_patterns()

    async def productivity_score(self) -> float:
        """Weekly completion rate, penalised for overdue work, bonus for regularity."""
        analytics = await self._repository.productivity_analytics("week")
        base = analytics.completion_rate if analytics.total_tasks else 50.0
        overdue = await self._repository.count_overdue()

        bonus = 0.0
        profile = await self._completion_profile()
        if profile is not None and profile.completions >= CONSISTENCY_MIN_SAMPLES:
            bonus = CONSISTENCY_BONUS * profile.consistency()

        score = base - OVERDUE_PENALTY * overdue + bonus
        return round(max(0.0, min(100.0, score)), 1)

    async def recommendations(self, kind: str = "general") -> Recommendations:
        """Short actionable tips for morning, afternoon, planning or general use."""
        now = self._now()
        overdue = await self._repository.count_overdue()
        due_today = await self._repository.count_due_today()
        high = await self._repository.count_high_priority()
        items: list[str] = []

        if kind == "morning":
            if overdue:
                items.append(f"Clear or reschedule {overdue} overdue task(s) first")
            if due_today:
                items.append(f"{due_today} task(s) are due today")
            items.append("Start with a high-energy task")
        elif kind == "afternoon":
            items.append("Switch to medium-energy work and meetings")
            if high:
                items.append(f"{high} high-priority task(s) still open")
        elif kind == "planning":
            schedule = await self.suggest_daily_schedule(now.date() + timedelta(days=1))
            items.append(
                f"Tomorrow's workload is {schedule.estimated_workload.level} "
                f"({schedule.estimated_workload.total_minutes} min)"
            )
            if schedule.buffer:
                items.append(f"{len(schedule.buffer)} task(s) did not fit tomorrow's blocks")
        else:
            kind = "general"
            if overdue:
                items.append(f"You have {overdue} overdue task(s)")
            if high:
                items.append(f"Focus on {high} high-priority task(s)")

        items.append(next((tip for hours, tip in HOURLY_TIPS if now.hour in hours), LATE_TIP))
        return Recommendations(kind=kind, items=items)
