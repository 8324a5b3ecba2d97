# tasks/ai_engine/scoring.py
"""
Priority Scoring Engine
=======================

Deterministic point-based ranking used everywhere tasks are listed.

The combined score is the sum of three independent contributions, each on a
small integer scale, clamped to [0, 11]:

    user priority   High=3, Medium=2, Low=1
    due date        0..3, shaped by the user's focus and urgency window
    AI assessment   1..3 (1 when the task was never scored)

``map_score_to_priority`` turns the combined score back into a priority
level; the orchestrator only applies it when the AI step succeeded.
"""

import datetime
from typing import Iterable, List, Optional

from .contracts import (
    FOCUS_BALANCED,
    FOCUS_DEADLINES,
    FOCUS_IMPORTANCE,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    DisplayTask,
    PriorityPreferences,
)
from .dates import local_date, local_today

MIN_COMBINED_SCORE = 0
MAX_COMBINED_SCORE = 11

HIGH_PRIORITY_THRESHOLD = 7
MEDIUM_PRIORITY_THRESHOLD = 4

PRIORITY_POINTS = {PRIORITY_HIGH: 3, PRIORITY_MEDIUM: 2, PRIORITY_LOW: 1}

# Importance predicate thresholds on the 0-100 AI scale
IMPORTANCE_FOCUS_AI_THRESHOLD = 75
GENERAL_AI_THRESHOLD = 85


def _compute_priority_points(priority: str) -> int:
    return PRIORITY_POINTS.get(priority, 0)


def _compute_due_date_points(days_until_due: int, preferences: PriorityPreferences) -> int:
    """
    Overdue tasks always get the maximum. A Deadlines focus narrows the
    urgent window to the user's preset and rewards the near tiers more.
    """
    deadlines_focus = preferences.focus == FOCUS_DEADLINES

    if days_until_due < 0:
        return 3
    if days_until_due <= preferences.urgency_window_days:
        return 3 if deadlines_focus else 2
    if days_until_due <= 7:
        return 2 if deadlines_focus else 1
    if days_until_due <= 14:
        return 1
    return 0


def _compute_ai_points(ai_priority_score: Optional[int]) -> int:
    # An unscored task is neutral, not penalized.
    if not ai_priority_score:
        return 1
    if ai_priority_score >= 70:
        return 3
    if ai_priority_score >= 40:
        return 2
    return 1


def compute_combined_score(
    priority: str,
    due_date,
    ai_priority_score: Optional[int],
    preferences: Optional[PriorityPreferences] = None,
    today: Optional[datetime.date] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> int:
    """
    Combine user priority, due-date urgency and the AI score into an
    ordinal in [0, 11].

    due_date: datetime or date; compared to ``today`` as calendar days
    ai_priority_score: 0-100 AI score, or None when the task was not scored
    """
    preferences = preferences or PriorityPreferences()
    today = today or local_today(tz)
    days_until_due = (local_date(due_date, tz) - today).days

    total = (
        _compute_priority_points(priority)
        + _compute_due_date_points(days_until_due, preferences)
        + _compute_ai_points(ai_priority_score)
    )
    return max(MIN_COMBINED_SCORE, min(MAX_COMBINED_SCORE, total))


def map_score_to_priority(combined_score: int) -> str:
    if combined_score >= HIGH_PRIORITY_THRESHOLD:
        return PRIORITY_HIGH
    if combined_score >= MEDIUM_PRIORITY_THRESHOLD:
        return PRIORITY_MEDIUM
    return PRIORITY_LOW


def _sort_key(task: DisplayTask):
    if task.status == STATUS_COMPLETED:
        completed_ts = task.completed_at.timestamp() if task.completed_at else float("-inf")
        return (1, -completed_ts, 0.0)
    combined = task.ai_data.combined_score if task.ai_data else float("-inf")
    due_ts = task.due_date.timestamp() if isinstance(task.due_date, datetime.datetime) else float("inf")
    return (0, -combined, due_ts)


def sort_tasks(tasks: Iterable[DisplayTask]) -> List[DisplayTask]:
    """
    Global list order: pending before completed; completed by most recent
    completion; pending by combined score (unscored last), then earliest due.
    """
    return sorted(tasks, key=_sort_key)


def is_task_important(task: DisplayTask, preferences: Optional[PriorityPreferences] = None) -> bool:
    """Filter predicate for the "important" this-week view."""
    preferences = preferences or PriorityPreferences()
    ai_score = task.ai_data.ai_priority_score if task.ai_data else None

    if preferences.focus == FOCUS_IMPORTANCE:
        if ai_score is not None and ai_score >= IMPORTANCE_FOCUS_AI_THRESHOLD:
            return True
        return task.priority == PRIORITY_HIGH

    if task.priority == PRIORITY_HIGH:
        return True

    if preferences.focus in (FOCUS_BALANCED, FOCUS_DEADLINES):
        return ai_score is not None and ai_score >= GENERAL_AI_THRESHOLD

    return False
