# tasks/ai_engine/timeframe.py
"""
Timeframe classification and grouping.

All comparisons are date-only and happen on the caller's local calendar day:
aware datetimes are converted into ``tz`` before their date is taken. Weeks
run Monday to Sunday.
"""

import datetime
from typing import Dict, Iterable, List, Optional

from .contracts import STATUS_COMPLETED, STATUS_PENDING, DisplayTask, PriorityPreferences
from .dates import local_date, local_today, month_bounds, week_bounds
from .scoring import is_task_important, sort_tasks

BUCKET_TODAY = "today"
BUCKET_THIS_WEEK = "this_week"
BUCKET_NEXT_TWO_WEEKS = "next_two_weeks"
BUCKET_THIS_MONTH = "this_month"
BUCKET_PAST_UNCOMPLETED = "past_uncompleted"
BUCKET_COMPLETED = "completed"

BUCKETS = (
    BUCKET_TODAY,
    BUCKET_THIS_WEEK,
    BUCKET_NEXT_TWO_WEEKS,
    BUCKET_THIS_MONTH,
    BUCKET_PAST_UNCOMPLETED,
    BUCKET_COMPLETED,
)

# Grouped-view timeframes
TIMEFRAME_ALL = "All"
TIMEFRAME_MOST_IMPORTANT = "MostImportant"
TIMEFRAME_TODAY = "Today"
TIMEFRAME_THIS_WEEK = "ThisWeek"
TIMEFRAME_NEXT_TWO_WEEKS = "NextTwoWeeks"
TIMEFRAME_THIS_MONTH = "ThisMonth"
TIMEFRAME_PAST_UNCOMPLETED = "PastUncompleted"
TIMEFRAME_BUCKETS = {
    TIMEFRAME_TODAY: BUCKET_TODAY,
    TIMEFRAME_THIS_WEEK: BUCKET_THIS_WEEK,
    TIMEFRAME_NEXT_TWO_WEEKS: BUCKET_NEXT_TWO_WEEKS,
    TIMEFRAME_THIS_MONTH: BUCKET_THIS_MONTH,
    TIMEFRAME_PAST_UNCOMPLETED: BUCKET_PAST_UNCOMPLETED,
}
TIMEFRAMES = (TIMEFRAME_ALL, TIMEFRAME_MOST_IMPORTANT) + tuple(TIMEFRAME_BUCKETS)

# Re-prioritization scopes
SCOPE_ALL = "All"
SCOPE_TODAY = "Today"
SCOPE_NEXT_TWO_WEEKS = "NextTwoWeeks"
SCOPE_THIS_MONTH = "ThisMonth"
SCOPES = (SCOPE_ALL, SCOPE_TODAY, SCOPE_NEXT_TWO_WEEKS, SCOPE_THIS_MONTH)

TOP_TASKS_LIMIT = 10

THIS_WEEK_FILTER_ALL = "all"
THIS_WEEK_FILTER_IMPORTANT = "important"


def classify_timeframe(
    due_date,
    status: str,
    today: Optional[datetime.date] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> Optional[str]:
    """
    Assign a task to exactly one bucket, or None when it falls after the
    current month and outside the next-two-weeks window.

    Rules are evaluated in order and the first match wins.
    """
    if status == STATUS_COMPLETED:
        return BUCKET_COMPLETED

    today = today or local_today(tz)
    due = local_date(due_date, tz)

    if due < today:
        return BUCKET_PAST_UNCOMPLETED
    if due == today:
        return BUCKET_TODAY

    week_start, week_end = week_bounds(today)
    if week_start <= due <= week_end:
        return BUCKET_THIS_WEEK

    window_start = week_end + datetime.timedelta(days=1)
    window_end = week_end + datetime.timedelta(days=14)
    if window_start <= due <= window_end:
        return BUCKET_NEXT_TWO_WEEKS

    month_start, month_end = month_bounds(today)
    if month_start <= due <= month_end and due > window_end:
        return BUCKET_THIS_MONTH

    return None


def tasks_for_scope(
    tasks: Iterable[DisplayTask],
    scope: str,
    today: Optional[datetime.date] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> List[DisplayTask]:
    """Pending tasks targeted by a bulk re-prioritization over ``scope``."""
    today = today or local_today(tz)
    pending = [t for t in tasks if t.status == STATUS_PENDING]

    if scope == SCOPE_TODAY:
        return [t for t in pending if local_date(t.due_date, tz) == today]
    if scope == SCOPE_NEXT_TWO_WEEKS:
        last_day = today + datetime.timedelta(days=13)
        return [t for t in pending if today <= local_date(t.due_date, tz) <= last_day]
    if scope == SCOPE_THIS_MONTH:
        month_start, month_end = month_bounds(today)
        return [t for t in pending if month_start <= local_date(t.due_date, tz) <= month_end]
    return pending


def group_tasks(
    tasks: Iterable[DisplayTask],
    timeframe: str = TIMEFRAME_ALL,
    preferences: Optional[PriorityPreferences] = None,
    this_week_filter: str = THIS_WEEK_FILTER_ALL,
    show_completed: bool = False,
    today: Optional[datetime.date] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> Dict[str, object]:
    """
    Build the grouped task view.

    Under ``All``/``MostImportant`` the ten highest-ranked pending tasks are
    lifted into ``top_tasks`` and left out of the buckets. Any other
    timeframe keeps only its own bucket. Every list is in global sort order.
    """
    today = today or local_today(tz)
    preferences = preferences or PriorityPreferences()
    tasks = list(tasks)
    pending = [t for t in tasks if t.status == STATUS_PENDING]
    completed = [t for t in tasks if t.status == STATUS_COMPLETED]

    overview = timeframe in (TIMEFRAME_ALL, TIMEFRAME_MOST_IMPORTANT)
    top_tasks: List[DisplayTask] = []
    if overview:
        top_tasks = sort_tasks(pending)[:TOP_TASKS_LIMIT]
        top_ids = {t.id for t in top_tasks}
        pending = [t for t in pending if t.id not in top_ids]

    groups: Dict[str, List[DisplayTask]] = {bucket: [] for bucket in BUCKETS}
    wanted_bucket = TIMEFRAME_BUCKETS.get(timeframe)
    for task in pending:
        bucket = classify_timeframe(task.due_date, task.status, today=today, tz=tz)
        if bucket is None:
            continue
        if overview or bucket == wanted_bucket:
            groups[bucket].append(task)

    if show_completed:
        groups[BUCKET_COMPLETED] = completed

    if this_week_filter == THIS_WEEK_FILTER_IMPORTANT and (overview or wanted_bucket == BUCKET_THIS_WEEK):
        groups[BUCKET_THIS_WEEK] = [
            t for t in groups[BUCKET_THIS_WEEK] if is_task_important(t, preferences)
        ]

    for bucket in BUCKETS:
        groups[bucket] = sort_tasks(groups[bucket])

    return {"top_tasks": top_tasks, "groups": groups}


def compute_stats(
    tasks: Iterable[DisplayTask],
    today: Optional[datetime.date] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> Dict[str, object]:
    """Dashboard counters plus the cumulative AI spend across ``tasks``."""
    today = today or local_today(tz)
    _month_start, month_end = month_bounds(today)
    done = upcoming = waiting = 0
    total_cost = 0.0
    for task in tasks:
        total_cost += task.total_ai_cost or 0.0
        if task.status == STATUS_COMPLETED:
            done += 1
            continue
        due = local_date(task.due_date, tz)
        if today < due <= month_end:
            upcoming += 1
        else:
            waiting += 1
    return {
        "done": done,
        "upcoming": upcoming,
        "waiting": waiting,
        "in_progress": 0,
        "total_ai_cost": round(total_cost, 6),
    }
