# tasks/services.py
"""
Persistence boundary between the ORM and the AI engine.

Views hand validated data to these functions; they convert ``Task`` rows to
``DisplayTask`` values, run the orchestrator, write the results back and
queue outbound webhooks once the transaction commits.
"""

import datetime
import logging
import zoneinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from preferences.models import AppSettings, PriorityPreferences

from .ai_engine.contracts import (
    CATEGORY_PERSONAL,
    OPERATION_CREATE,
    OPERATION_UPDATE,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    STATUS_PENDING,
    AIPrioritizationResult,
    AISettings,
    BulkResult,
    DisplayTask,
    ProcessingResult,
)
from .ai_engine.cost import calculate_cost
from .ai_engine.dates import local_today
from .ai_engine.orchestrator import AIOrchestrator
from .ai_engine.timeframe import tasks_for_scope
from .models import Task
from .snapshot import task_to_dict
from .tasks import deliver_task_webhook
from .webhooks import (
    EVENT_TASK_CREATED,
    EVENT_TASK_REPRIORITIZED_BULK,
    EVENT_TASK_UPDATED,
    resolve_webhook_url,
)

logger = logging.getLogger(__name__)

INBOUND_FIELDS = (
    "title", "description", "due_date", "priority", "status",
    "category", "tags", "completed_at", "instructions",
)


# ---------------------------------------------------------------------------
# Per-user context
# ---------------------------------------------------------------------------

def user_timezone(user) -> datetime.tzinfo:
    name = getattr(user, "timezone", None) or settings.TIME_ZONE
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}' for user {user.pk}; using UTC")
        return datetime.timezone.utc


def user_today(user) -> datetime.date:
    return local_today(user_timezone(user))


def get_preferences(user) -> PriorityPreferences:
    preferences, _created = PriorityPreferences.objects.get_or_create(user=user)
    return preferences


def get_app_settings(user) -> AppSettings:
    app_settings, _created = AppSettings.objects.get_or_create(user=user)
    return app_settings


def load_ai_settings(user, api_key: Optional[str] = None) -> AISettings:
    """``api_key`` (e.g. from a request header) overrides the saved key."""
    app_settings = get_app_settings(user)
    return AISettings(
        model_id=app_settings.selected_ai_model,
        api_key=api_key or app_settings.api_key or None,
        preferences=get_preferences(user).to_contract(),
    )


def build_orchestrator(user, api_key: Optional[str] = None) -> AIOrchestrator:
    tz = user_timezone(user)
    return AIOrchestrator(load_ai_settings(user, api_key), tz=tz)


# ---------------------------------------------------------------------------
# Row <-> DisplayTask
# ---------------------------------------------------------------------------

def to_display_task(task: Task) -> DisplayTask:
    return DisplayTask(
        id=str(task.id),
        title=task.title,
        description=task.description,
        due_date=task.due_date,
        priority=task.priority,
        status=task.status,
        category=task.category,
        tags=list(task.tags or []),
        created_at=task.created_at,
        completed_at=task.completed_at,
        instructions=task.instructions,
        ai_data=task.ai_data,
        total_ai_cost=task.total_ai_cost,
    )


def apply_ai_result(task: Task, display: DisplayTask) -> Task:
    """Copy the fields the AI pipeline may change back onto the row."""
    task.tags = list(display.tags)
    task.priority = display.priority
    task.ai_data = display.ai_data
    task.total_ai_cost = display.total_ai_cost
    return task


def display_tasks_for(user) -> List[DisplayTask]:
    return [to_display_task(t) for t in Task.objects.filter(user=user)]


# ---------------------------------------------------------------------------
# Outbound webhooks
# ---------------------------------------------------------------------------

def notify_task_event(user, event: str, task: Task) -> bool:
    """
    Queue a webhook delivery for ``task`` after the current transaction
    commits. Returns False when no webhook URL is configured.
    """
    url = resolve_webhook_url(get_app_settings(user).webhook_url)
    if not url:
        return False

    payload = task_to_dict(to_display_task(task))

    def enqueue():
        try:
            deliver_task_webhook.delay(url, event, payload)
        except Exception as e:
            logger.error(f"Could not queue webhook {event} for task {payload['id']}: {e}")

    transaction.on_commit(enqueue)
    return True


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_task(user, data: Dict[str, Any], api_key: Optional[str] = None) -> Tuple[Task, ProcessingResult]:
    """Run the create pipeline and persist the task. AI failures never block the save."""
    task = Task(user=user, **data)
    result = build_orchestrator(user, api_key).process_task(to_display_task(task), OPERATION_CREATE)
    apply_ai_result(task, result.task)

    with transaction.atomic():
        task.save()
        notify_task_event(user, EVENT_TASK_CREATED, task)

    logger.info(f"Created task {task.id} for user {user.pk} (AI processed: {result.ai_processed})")
    return task, result


def update_task(task: Task, data: Dict[str, Any], api_key: Optional[str] = None) -> Tuple[Task, ProcessingResult]:
    original_title, original_description = task.title, task.description
    for field, value in data.items():
        setattr(task, field, value)

    result = build_orchestrator(task.user, api_key).process_task(
        to_display_task(task),
        OPERATION_UPDATE,
        original_title=original_title,
        original_description=original_description,
    )
    apply_ai_result(task, result.task)

    with transaction.atomic():
        task.save()
        notify_task_event(task.user, EVENT_TASK_UPDATED, task)

    logger.info(f"Updated task {task.id} (AI processed: {result.ai_processed})")
    return task, result


def toggle_complete(task: Task) -> Task:
    task.status = STATUS_PENDING if task.status == STATUS_COMPLETED else STATUS_COMPLETED
    with transaction.atomic():
        task.save()
        notify_task_event(task.user, EVENT_TASK_UPDATED, task)
    return task


def reprioritize_scope(user, scope: str, api_key: Optional[str] = None) -> BulkResult:
    """
    Bulk AI pass over the user's pending tasks in ``scope``. Each task row is
    saved (and its webhook queued) as soon as its own AI step resolves.
    """
    orchestrator = build_orchestrator(user, api_key)
    rows = {str(t.id): t for t in Task.objects.filter(user=user)}
    scoped = tasks_for_scope(
        [to_display_task(t) for t in rows.values()], scope, today=orchestrator.today, tz=orchestrator.tz
    )
    logger.info(f"Re-prioritizing {len(scoped)} task(s) in scope '{scope}' for user {user.pk}")

    def persist(display: DisplayTask) -> None:
        row = apply_ai_result(rows[display.id], display)
        with transaction.atomic():
            row.save()
            notify_task_event(user, EVENT_TASK_REPRIORITIZED_BULK, row)

    result = orchestrator.process_scope(scoped, on_task_processed=persist)

    AppSettings.objects.filter(pk=get_app_settings(user).pk).update(last_batch_ai_cost=result.batch_ai_cost)
    return result


def apply_inbound_update(task: Task, data: Dict[str, Any]) -> Task:
    """
    Merge a webhook payload into ``task``. ``ai_data`` may be partial: only
    the keys present replace the stored values. No AI run, no outbound event.
    """
    for field in INBOUND_FIELDS:
        if field in data:
            setattr(task, field, data[field])

    ai_patch = data.get("ai_data")
    if ai_patch:
        current = task.ai_data
        merged = current.to_dict() if current else {
            "ai_priority_score": 0,
            "reasoning": "",
            "suggested_action": "",
        }
        merged.update(ai_patch)
        task.ai_data = AIPrioritizationResult(**merged)

    task.save()
    logger.info(f"Inbound webhook updated task {task.id}: {sorted(k for k in data if k != 'id')}")
    return task


def import_tasks(user, tasks: Iterable[DisplayTask]) -> Dict[str, int]:
    """
    Upsert snapshot tasks for ``user``. An id owned by another user is
    imported under a fresh id.
    """
    created = updated = 0
    with transaction.atomic():
        for display in tasks:
            row = Task.objects.filter(pk=display.id).first()
            if row is not None and row.user_id != user.pk:
                row = None
                display_id = None
            else:
                display_id = display.id

            if row is None:
                row = Task(user=user) if display_id is None else Task(user=user, id=display_id)
                created += 1
            else:
                updated += 1

            row.title = display.title
            row.description = display.description
            row.due_date = display.due_date
            row.status = display.status
            row.category = display.category
            row.created_at = display.created_at or timezone.now()
            row.completed_at = display.completed_at
            row.instructions = display.instructions
            apply_ai_result(row, display)
            row.save()

    logger.info(f"Imported snapshot for user {user.pk}: {created} created, {updated} updated")
    return {"created": created, "updated": updated}


# ---------------------------------------------------------------------------
# Voice entry
# ---------------------------------------------------------------------------

def parse_transcript(user, transcript: str, api_key: Optional[str] = None) -> Dict[str, Any]:
    """
    Split a transcript into task drafts with the user's AI model. Returns the
    scorer's dict: ``parsed_tasks`` plus ``cost``, or ``error_code`` /
    ``error_message``.
    """
    orchestrator = build_orchestrator(user, api_key)
    result = orchestrator.scorer.parse_voice_transcript(transcript, today=orchestrator.today)
    result["cost"] = calculate_cost(
        orchestrator.model_id, result.get("input_tokens", 0), result.get("output_tokens", 0)
    )
    if result.get("error_code"):
        logger.warning(f"Transcript parsing failed for user {user.pk}: {result.get('error_message')}")
    return result


def draft_due_date(day: Optional[datetime.date], tz: datetime.tzinfo) -> datetime.datetime:
    """Drafts carry a bare date; tasks get it at noon local time, or now."""
    if day is None:
        return timezone.now()
    return datetime.datetime.combine(day, datetime.time(hour=12), tzinfo=tz)


def create_tasks_from_drafts(user, drafts: List[Dict[str, Any]], api_key: Optional[str] = None) -> List[Task]:
    tz = user_timezone(user)
    created = []
    for draft in drafts:
        task, _result = create_task(
            user,
            {
                "title": draft["title"],
                "description": draft.get("description") or draft["title"],
                "due_date": draft_due_date(draft.get("due_date"), tz),
                "priority": PRIORITY_MEDIUM,
                "category": CATEGORY_PERSONAL,
            },
            api_key=api_key,
        )
        created.append(task)
    return created
