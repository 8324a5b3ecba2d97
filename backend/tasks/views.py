# tasks/views.py

import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, permissions, status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .ai_engine.celery_tasks import run_scope_reprioritization
from .ai_engine.contracts import CATEGORY_PERSONAL, PRIORITY_MEDIUM
from .ai_engine.external_scorer import (
    ERROR_INVALID_API_KEY,
    ERROR_NOT_CONFIGURED,
    ERROR_QUOTA_EXCEEDED,
)
from .ai_engine.scoring import sort_tasks
from .ai_engine.timeframe import compute_stats, group_tasks
from .ai_engine.transcriber import AudioTranscriber, TranscriptionError, resolve_openai_key
from .models import Task
from .quick_add import parse_quick_add
from .serializers import (
    GroupedTasksQuerySerializer,
    QuickAddSerializer,
    ReprioritizeSerializer,
    TaskSerializer,
    TranscribeSerializer,
    VoiceParseSerializer,
)
from .snapshot import dump_tasks, load_tasks

logger = logging.getLogger(__name__)

# Per-request key overrides; saved settings and the environment come after.
AI_KEY_HEADER = 'HTTP_X_AI_API_KEY'
OPENAI_KEY_HEADER = 'HTTP_X_OPENAI_KEY'

TRANSCRIPT_ERROR_STATUS = {
    ERROR_NOT_CONFIGURED: status.HTTP_400_BAD_REQUEST,
    ERROR_INVALID_API_KEY: status.HTTP_401_UNAUTHORIZED,
    ERROR_QUOTA_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
}


def _ai_status(result):
    return {
        'ai_error': result.ai_error,
        'api_key_available': result.api_key_available,
        'ai_processed': result.ai_processed,
    }


def _rows_in_order(user, displays):
    """Task rows for ``displays``, in the same order."""
    rows = Task.objects.filter(user=user, id__in=[d.id for d in displays]).in_bulk()
    return [rows[key] for key in (Task._meta.pk.to_python(d.id) for d in displays) if key in rows]


class TaskOwnerPermission(permissions.BasePermission):
    """
    Custom permission to only allow owners of a Task to view, edit, or delete it.
    """
    def has_object_permission(self, request, view, obj):
        return obj.user == request.user


class TaskListCreateView(generics.ListCreateAPIView):
    """
    GET: List the authenticated user's tasks in ranking order.
    POST: Create a task; runs the AI create pipeline before saving.
    """
    serializer_class = TaskSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        # ensure user only sees own tasks
        return Task.objects.filter(user=self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['api_key'] = self.request.META.get(AI_KEY_HEADER) or None
        return context

    def list(self, request, *args, **kwargs):
        displays = sort_tasks(services.to_display_task(t) for t in self.get_queryset())
        serializer = self.get_serializer(_rows_in_order(request.user, displays), many=True)
        return Response(serializer.data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        data = dict(serializer.data)
        data['ai_status'] = _ai_status(serializer.processing_result)
        return Response(data, status=status.HTTP_201_CREATED)

list_create_view = TaskListCreateView.as_view()


class TaskRetrieveUpdateDestroyView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET, PUT, PATCH, DELETE for a specific task instance.
    PUT/PATCH run the AI update pipeline.
    """
    serializer_class = TaskSerializer
    permission_classes = [permissions.IsAuthenticated, TaskOwnerPermission]

    # Ensures the user can only access tasks they own.
    def get_queryset(self):
        return Task.objects.filter(user=self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['api_key'] = self.request.META.get(AI_KEY_HEADER) or None
        return context

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        data = dict(serializer.data)
        data['ai_status'] = _ai_status(serializer.processing_result)
        return Response(data)

retrieve_update_destroy_view = TaskRetrieveUpdateDestroyView.as_view()


class ToggleCompleteView(APIView):
    """POST: flip a task between Pending and Completed."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        task = get_object_or_404(Task, pk=pk, user=request.user)
        task = services.toggle_complete(task)
        return Response(TaskSerializer(task).data)

toggle_complete_view = ToggleCompleteView.as_view()


class QuickAddView(APIView):
    """
    POST {"text": "..."}: parse one line of quick-add text and create the
    task, filling the same defaults as the full form.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = QuickAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        now = timezone.now().astimezone(services.user_timezone(request.user))
        parsed = parse_quick_add(serializer.validated_data['text'], now=now)
        task, result = services.create_task(
            request.user,
            {
                'title': parsed.title,
                'description': parsed.description or parsed.title,
                'due_date': parsed.due_date or now,
                'priority': parsed.priority or PRIORITY_MEDIUM,
                'category': parsed.category or CATEGORY_PERSONAL,
            },
            api_key=request.META.get(AI_KEY_HEADER) or None,
        )
        data = dict(TaskSerializer(task).data)
        data['ai_status'] = _ai_status(result)
        return Response(data, status=status.HTTP_201_CREATED)

quick_add_view = QuickAddView.as_view()


class GroupedTasksView(APIView):
    """
    GET ?timeframe=&this_week_filter=&show_completed=
    Tasks grouped into timeframe buckets, each bucket in ranking order.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        query = GroupedTasksQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        user = request.user
        tz = services.user_timezone(user)
        grouped = group_tasks(
            services.display_tasks_for(user),
            timeframe=params['timeframe'],
            preferences=services.get_preferences(user).to_contract(),
            this_week_filter=params['this_week_filter'],
            show_completed=params['show_completed'],
            tz=tz,
        )
        return Response({
            'timeframe': params['timeframe'],
            'top_tasks': TaskSerializer(_rows_in_order(user, grouped['top_tasks']), many=True).data,
            'groups': {
                bucket: TaskSerializer(_rows_in_order(user, tasks), many=True).data
                for bucket, tasks in grouped['groups'].items()
            },
        })

grouped_tasks_view = GroupedTasksView.as_view()


class ReprioritizeView(APIView):
    """
    POST {"scope": "All|Today|NextTwoWeeks|ThisMonth", "background": bool}
    Bulk AI re-prioritization. In the background it is queued as a Celery
    job and the job id is returned with 202.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ReprioritizeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        scope = serializer.validated_data['scope']

        if serializer.validated_data['background']:
            job = run_scope_reprioritization.delay(request.user.id, scope)
            logger.info(f"Queued bulk re-prioritization {job.id} for user {request.user.id}")
            return Response({'job_id': job.id, 'scope': scope}, status=status.HTTP_202_ACCEPTED)

        result = services.reprioritize_scope(
            request.user, scope, api_key=request.META.get(AI_KEY_HEADER) or None
        )
        data = result.summary()
        data['scope'] = scope
        data['tasks'] = TaskSerializer(_rows_in_order(request.user, result.tasks), many=True).data
        return Response(data)

reprioritize_view = ReprioritizeView.as_view()


class TaskStatsView(APIView):
    """GET: dashboard counters, cumulative AI cost and the last bulk pass cost."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        stats = compute_stats(services.display_tasks_for(user), tz=services.user_timezone(user))
        stats['last_batch_ai_cost'] = services.get_app_settings(user).last_batch_ai_cost
        return Response(stats)

stats_view = TaskStatsView.as_view()


class TaskExportView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(dump_tasks(services.display_tasks_for(request.user)))

export_view = TaskExportView.as_view()


class TaskImportView(APIView):
    """POST a snapshot (as produced by export, or a bare task list)."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        try:
            tasks = load_tasks(request.data, tz=services.user_timezone(request.user))
        except ValueError as e:
            raise ValidationError({'detail': str(e)})
        counts = services.import_tasks(request.user, tasks)
        return Response(counts, status=status.HTTP_201_CREATED if counts['created'] else status.HTTP_200_OK)

import_view = TaskImportView.as_view()


class TranscribeView(APIView):
    """POST multipart ``audio``: speech-to-text via Whisper."""
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = TranscribeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        audio = serializer.validated_data['audio']

        api_key, source = resolve_openai_key(
            request.META.get(OPENAI_KEY_HEADER) or None,
            services.get_app_settings(request.user).openai_api_key or None,
        )
        logger.info(f"Transcribing {audio.name} ({audio.size} bytes, key source: {source})")
        try:
            text = AudioTranscriber(api_key).transcribe((audio.name, audio.read()))
        except TranscriptionError as e:
            return Response({'error': e.message}, status=e.status_code)
        return Response({'text': text})

transcribe_view = TranscribeView.as_view()


class VoiceParseView(APIView):
    """
    POST {"transcript": "...", "create": bool}
    Split a transcript into task drafts; with ``create`` the drafts are
    created as tasks straight away.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = VoiceParseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        api_key = request.META.get(AI_KEY_HEADER) or None

        result = services.parse_transcript(request.user, serializer.validated_data['transcript'], api_key)
        if result.get('error_code'):
            return Response(
                {'error': result['error_message'], 'error_code': result['error_code']},
                status=TRANSCRIPT_ERROR_STATUS.get(result['error_code'], status.HTTP_502_BAD_GATEWAY),
            )

        drafts = result['parsed_tasks']
        if serializer.validated_data['create']:
            created = services.create_tasks_from_drafts(request.user, drafts, api_key)
            return Response(
                {'tasks': TaskSerializer(created, many=True).data, 'cost': result['cost']},
                status=status.HTTP_201_CREATED,
            )

        return Response({
            'parsed_tasks': [
                {**draft, 'due_date': draft['due_date'].isoformat() if draft['due_date'] else None}
                for draft in drafts
            ],
            'cost': result['cost'],
        })

voice_parse_view = VoiceParseView.as_view()
