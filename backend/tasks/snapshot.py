# tasks/snapshot.py
"""
JSON snapshot of a task list, used by export/import and as the outbound
webhook payload.

Loading is forgiving: a snapshot written by an older client (or edited by
hand) still loads, with defaults substituted for anything missing or
malformed.
"""

import datetime
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .ai_engine.contracts import (
    CATEGORIES,
    CATEGORY_OTHER,
    PRIORITIES,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUSES,
    AIPrioritizationResult,
    DisplayTask,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def task_to_dict(task: DisplayTask) -> Dict[str, Any]:
    return {
        "id": str(task.id),
        "title": task.title,
        "description": task.description,
        "due_date": _iso(task.due_date),
        "priority": task.priority,
        "status": task.status,
        "category": task.category,
        "tags": list(task.tags),
        "created_at": _iso(task.created_at),
        "completed_at": _iso(task.completed_at),
        "instructions": task.instructions,
        "ai_data": task.ai_data.to_dict() if task.ai_data else None,
        "total_ai_cost": task.total_ai_cost,
    }


def dump_tasks(tasks: Iterable[DisplayTask]) -> Dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "exported_at": timezone.now().isoformat(),
        "tasks": [task_to_dict(t) for t in tasks],
    }


def parse_instant(value: Any, tz: Optional[datetime.tzinfo] = None) -> Optional[datetime.datetime]:
    """
    ISO-8601 datetime or plain date to an aware datetime; None when the value
    can't be read. Naive values are taken to be in ``tz`` (default: current).
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime.combine(value, datetime.time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.datetime.combine(day, datetime.time.min) if day else None
        except ValueError:
            parsed = None
    else:
        parsed = None

    if parsed is None:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, tz or timezone.get_current_timezone())
    return parsed


def _number(value: Any, default=0):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _load_ai_data(raw: Any) -> Optional[AIPrioritizationResult]:
    if not isinstance(raw, dict):
        return None
    return AIPrioritizationResult(
        ai_priority_score=int(_number(raw.get("ai_priority_score"))),
        reasoning=str(raw.get("reasoning") or ""),
        suggested_action=str(raw.get("suggested_action") or ""),
        combined_score=int(_number(raw.get("combined_score"))),
        is_vague=bool(raw.get("is_vague", False)),
        last_operation_cost=float(_number(raw.get("last_operation_cost"))),
        input_tokens=int(_number(raw.get("input_tokens"))),
        output_tokens=int(_number(raw.get("output_tokens"))),
    )


def task_from_dict(raw: Dict[str, Any], tz: Optional[datetime.tzinfo] = None) -> DisplayTask:
    now = timezone.now()

    task_id = raw.get("id")
    try:
        task_id = str(uuid.UUID(str(task_id)))
    except (TypeError, ValueError):
        task_id = str(uuid.uuid4())

    status = raw.get("status") if raw.get("status") in STATUSES else STATUS_PENDING
    completed_at = parse_instant(raw.get("completed_at"), tz)
    if status == STATUS_COMPLETED and completed_at is None:
        completed_at = now
    elif status != STATUS_COMPLETED:
        completed_at = None

    tags = raw.get("tags")
    tags = [str(t) for t in tags] if isinstance(tags, list) else []

    return DisplayTask(
        id=task_id,
        title=str(raw.get("title") or "Untitled Task"),
        description=str(raw.get("description") or ""),
        due_date=parse_instant(raw.get("due_date"), tz) or now,
        priority=raw.get("priority") if raw.get("priority") in PRIORITIES else PRIORITY_MEDIUM,
        status=status,
        category=raw.get("category") if raw.get("category") in CATEGORIES else CATEGORY_OTHER,
        tags=tags,
        created_at=parse_instant(raw.get("created_at"), tz) or now,
        completed_at=completed_at,
        instructions=raw.get("instructions") or None,
        ai_data=_load_ai_data(raw.get("ai_data")),
        total_ai_cost=float(_number(raw.get("total_ai_cost"))),
    )


def load_tasks(data: Any, tz: Optional[datetime.tzinfo] = None) -> List[DisplayTask]:
    """
    Accepts either a ``dump_tasks`` document or a bare list of task dicts.
    Entries that aren't objects are skipped.
    """
    records = data.get("tasks", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ValueError("Snapshot must be a list of tasks or an object with a 'tasks' list.")

    loaded = []
    for index, raw in enumerate(records):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping snapshot entry {index}: not an object")
            continue
        loaded.append(task_from_dict(raw, tz))
    return loaded
