# tasks/ai_engine/celery_tasks.py

import logging
from typing import Any, Dict, Optional

from celery import shared_task
from django.contrib.auth import get_user_model

# Configure logging for background worker monitoring
logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    time_limit=600,         # A whole scope runs in one job
    soft_time_limit=570     # Soft limit to allow cleanup
)
def run_scope_reprioritization(
    self,
    user_id: int,
    scope: str
) -> Optional[Dict[str, Any]]:
    """
    Worker: bulk re-prioritization of one user's scope. Input = (user_id, scope)
    only; tasks, preferences and keys are read from the DB in the worker.
    """
    # Imported here: the engine package must stay importable without the ORM.
    from ..services import reprioritize_scope

    logger.info(f"Bulk re-prioritization started for user {user_id} (scope: {scope})")
    try:
        user = get_user_model().objects.filter(pk=user_id).first()
        if not user:
            logger.warning(f"User {user_id} not found. Exiting worker.")
            return None

        result = reprioritize_scope(user, scope)

        logger.info(
            f"Bulk re-prioritization finished for user {user_id}: "
            f"{result.ai_processed_count}/{result.total_tasks} processed"
        )
        return result.summary()

    except Exception as exc:
        logger.exception(f"Bulk re-prioritization failed for user {user_id}: {exc}")
        # No retry: tasks finished before the failure are already billed
        raise
