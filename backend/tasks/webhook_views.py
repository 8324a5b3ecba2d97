# tasks/webhook_views.py
"""
Inbound task updates from the automation tool.

The endpoint carries no JWT; callers prove themselves with a shared secret
sent in a configurable header (or as either half of HTTP Basic credentials).
The server-wide secret from the environment takes precedence over the task
owner's own secret.
"""

import base64
import binascii
import hmac
import logging

from django.conf import settings
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import Task
from .serializers import InboundTaskUpdateSerializer, TaskSerializer

logger = logging.getLogger(__name__)

QUERY_FIELDS = ('id', 'title', 'description', 'due_date', 'priority', 'status', 'category', 'instructions')


def _header(request, name):
    return request.headers.get(name) if name else None


def _basic_auth_parts(request):
    auth = request.headers.get('Authorization', '')
    if not auth.startswith('Basic '):
        return ()
    try:
        decoded = base64.b64decode(auth.split(' ', 1)[1]).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError, IndexError):
        logger.warning("Inbound webhook: malformed Basic auth header")
        return ()
    return tuple(decoded.split(':', 1))


def _secret_matches(request, header_name, secret):
    candidates = [_header(request, header_name), *_basic_auth_parts(request)]
    return any(
        value is not None and hmac.compare_digest(str(value), secret)
        for value in candidates
    )


def check_inbound_auth(request, owner_settings):
    """
    Returns None when the request may proceed, else the 401 Response.

    Order: auth disabled (env or owner) > env header/secret > owner's
    header/secret. No configured secret at all is a rejection.
    """
    if settings.DISABLE_INCOMING_WEBHOOK_AUTH or owner_settings.disable_incoming_webhook_auth:
        return None

    env_header = settings.APP_INCOMING_WEBHOOK_HEADER_NAME
    env_secret = settings.APP_INCOMING_WEBHOOK_SECRET_VALUE
    if env_header and env_secret:
        header_name, secret = env_header, env_secret
    else:
        header_name = owner_settings.incoming_webhook_header_name
        secret = owner_settings.incoming_webhook_secret

    if not secret:
        logger.error("Inbound webhook rejected: no webhook secret configured on the server or for the task owner")
        return Response({'error': 'Webhook security not configured.'}, status=status.HTTP_401_UNAUTHORIZED)

    if not _secret_matches(request, header_name, secret):
        logger.warning(
            f"Unauthorized inbound webhook attempt (header '{header_name}'). "
            f"IP: {request.META.get('REMOTE_ADDR')}"
        )
        return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    return None


class TaskUpdateWebhookView(APIView):
    """
    POST: JSON body ``{"id": ..., <fields>}``.
    GET: the same fields as query parameters (no tags or ai_data).
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        if not isinstance(request.data, dict):
            return Response({'error': 'Invalid JSON payload'}, status=status.HTTP_400_BAD_REQUEST)
        return self._handle(request, dict(request.data))

    def get(self, request):
        payload = {k: request.query_params[k] for k in QUERY_FIELDS if request.query_params.get(k)}
        return self._handle(request, payload)

    def _handle(self, request, payload):
        if not payload.get('id'):
            logger.error("Inbound webhook: task id missing")
            return Response({'error': 'Task ID is required'}, status=status.HTTP_400_BAD_REQUEST)

        serializer = InboundTaskUpdateSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        task = Task.objects.select_related('user').filter(pk=data['id']).first()
        if task is None:
            logger.warning(f"Inbound webhook for unknown task {data['id']}")
            return Response({'error': 'Task not found'}, status=status.HTTP_404_NOT_FOUND)

        denied = check_inbound_auth(request, services.get_app_settings(task.user))
        if denied is not None:
            return denied

        task = services.apply_inbound_update(task, data)
        return Response(
            {'message': 'Task update received.', 'task': TaskSerializer(task).data},
            status=status.HTTP_200_OK,
        )

task_update_webhook_view = TaskUpdateWebhookView.as_view()
