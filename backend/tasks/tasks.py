# tasks/tasks.py

import logging

from celery import shared_task

from .webhooks import TaskWebhookClient

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True, time_limit=30, soft_time_limit=25)
def deliver_task_webhook(url: str, event: str, task_payload: dict) -> bool:
    """
    Fire-and-forget delivery of one task event. No retries: the automation
    side is expected to reconcile from the next event.
    """
    return TaskWebhookClient(url).send(event, task_payload)
