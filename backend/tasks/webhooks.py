# tasks/webhooks.py
"""
Outbound task webhooks for the automation tool (n8n or anything that accepts
a JSON POST). Delivery is best-effort: failures are logged, never raised.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

EVENT_TASK_CREATED = "task_created"
EVENT_TASK_UPDATED = "task_updated"
EVENT_TASK_REPRIORITIZED_BULK = "task_reprioritized_bulk"


def resolve_webhook_url(user_url: Optional[str] = None) -> Optional[str]:
    """The user's configured URL wins over the server-wide N8N_WEBHOOK_URL."""
    return user_url or getattr(settings, "N8N_WEBHOOK_URL", None) or None


class TaskWebhookClient:
    """POSTs ``{"event": ..., "task": ...}`` to a single webhook URL."""

    def __init__(self, url: str, timeout: Optional[float] = None) -> None:
        self.url = url
        self._timeout = timeout or getattr(settings, "WEBHOOK_TIMEOUT", 10.0)
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def send(self, event: str, task_payload: Dict[str, Any]) -> bool:
        """Returns True when the endpoint answered with a 2xx status."""
        body = {"event": event, "task": task_payload}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self.url, json=body, headers=self._headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Webhook {event} for task {task_payload.get('id')} rejected: "
                f"{e.response.status_code} {e.response.text[:200]}"
            )
            return False
        except httpx.HTTPError as e:
            logger.error(f"Webhook {event} for task {task_payload.get('id')} failed: {e}")
            return False

        logger.info(f"Webhook {event} delivered for task {task_payload.get('id')}")
        return True
