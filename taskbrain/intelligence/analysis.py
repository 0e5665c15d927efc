"""Sub-analyses run on a newly created task.

Each analysis returns its own confidence in [0, 1]. The engine averages
the five primary analyses to decide on auto-apply; the context
recommendation only gates its own field.
"""

import re
from collections.abc import Iterable
from datetime import datetime

from taskbrain.intelligence.models import (
    BreakdownSuggestion,
    ContextRecommendation,
    DependencyAnalysis,
    DurationEstimate,
    OptimalTime,
    PriorityAnalysis,
)
from taskbrain.intelligence.patterns import CompletionProfile
from taskbrain.tasks.models import Task

URGENCY_KEYWORDS = ("urgent", "asap", "critical", "emergency", "immediately", "important")

# First matching row wins
DURATION_KEYWORDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("quick", "simple"), 15),
    (("review", "check"), 30),
    (("meeting", "call"), 60),
    (("research", "analyze"), 120),
    (("create", "build"), 180),
)
DEFAULT_DURATION = 60

CONTEXT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "computer": ("code", "email", "write", "document", "report", "design", "research"),
    "phone": ("call", "phone", "text", "contact"),
    "meeting": ("meeting", "meet", "discuss", "standup", "sync"),
    "focused": ("analyze", "plan", "strategy", "think", "review"),
}

STOPWORDS = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "into", "about",
    "task", "todo", "need", "needs",
})

BREAKDOWN_LENGTH = 100
DEFAULT_TIME = "09:00"

_WORD = re.compile(r"[a-z0-9]+")
_SPLIT = re.compile(r"\s+and\s+|\s*&\s*|\s*;\s*", re.IGNORECASE)


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def _has_word(text: str, keywords: Iterable[str]) -> str | None:
    words = set(_words(text))
    for keyword in keywords:
        if keyword in words:
            return keyword
    return None


def analyze_priority(task: Task, now: datetime) -> PriorityAnalysis:
    """Re-check priority from urgency keywords and due-date proximity."""
    confidence = 0.6
    suggested = float(task.priority)
    reasons: list[str] = []

    keyword = _has_word(task.content, URGENCY_KEYWORDS)
    if keyword:
        confidence += 0.2
        suggested += 1
        reasons.append(f"urgency keyword '{keyword}'")

    if task.due_date is not None:
        days = (task.due_date.date() - now.date()).days
        if days <= 1:
            confidence += 0.15
            suggested += 1
            reasons.append("due within 1 day")
        elif days <= 3:
            confidence += 0.05
            suggested += 0.5
            reasons.append("due within 3 days")

    return PriorityAnalysis(
        suggested_priority=min(int(suggested + 0.5), 5),
        confidence=round(min(confidence, 0.95), 2),
        reasons=reasons,
    )


def estimate_duration(task: Task) -> DurationEstimate:
    """Estimate minutes from content keywords."""
    for keywords, minutes in DURATION_KEYWORDS:
        keyword = _has_word(task.content, keywords)
        if keyword:
            return DurationEstimate(
                estimated_minutes=minutes, confidence=0.85, matched_keyword=keyword
            )
    return DurationEstimate(estimated_minutes=DEFAULT_DURATION, confidence=0.5)


def suggest_optimal_time(profile: CompletionProfile | None) -> OptimalTime:
    """Suggest a start time from the hour the user completes tasks most."""
    if profile is None or profile.completions == 0 or not profile.hour_counts:
        return OptimalTime(
            suggested_time=DEFAULT_TIME,
            confidence=0.4,
            reason="no completion history",
        )
    best_hour = max(sorted(profile.hour_counts), key=lambda h: profile.hour_counts[h])
    return OptimalTime(
        suggested_time=f"{best_hour:02d}:00",
        confidence=round(0.6 + 0.05 * min(profile.completions, 7), 2),
        reason=f"most completions happen around {best_hour:02d}:00",
    )


def _keywords(text: str) -> set[str]:
    return {w for w in _words(text) if len(w) > 2 and w not in STOPWORDS}


def detect_dependencies(task: Task, others: Iterable[Task]) -> DependencyAnalysis:
    """Flag active tasks sharing at least two keywords as possible prerequisites."""
    own = _keywords(task.content)
    candidates = [
        other.id
        for other in others
        if other.id != task.id and len(own & _keywords(other.content)) >= 2
    ]
    return DependencyAnalysis(
        candidates=candidates,
        confidence=0.6 if candidates else 0.9,
    )


def suggest_breakdown(task: Task) -> BreakdownSuggestion:
    """Suggest splitting long or compound tasks."""
    content = task.content
    compound = " and " in content.lower() or "&" in content
    if len(content) <= BREAKDOWN_LENGTH and not compound:
        return BreakdownSuggestion(should_break_down=False, confidence=0.9)

    parts = [part.strip() for part in _SPLIT.split(content) if part.strip()]
    return BreakdownSuggestion(
        should_break_down=True,
        subtasks=parts if len(parts) > 1 else [],
        confidence=0.6,
    )


def recommend_context(task: Task) -> ContextRecommendation:
    """Suggest context tags (computer, phone, meeting, focused) by keyword."""
    tags = [
        tag
        for tag, keywords in CONTEXT_KEYWORDS.items()
        if _has_word(task.content, keywords)
    ]
    return ContextRecommendation(tags=tags, confidence=0.75 if tags else 0.3)
