# tasks/serializers.py

import logging

from rest_framework import serializers

from . import services
from .ai_engine.contracts import CATEGORIES, PRIORITIES, STATUSES
from .ai_engine.timeframe import (
    SCOPE_ALL,
    SCOPES,
    THIS_WEEK_FILTER_ALL,
    THIS_WEEK_FILTER_IMPORTANT,
    TIMEFRAME_ALL,
    TIMEFRAMES,
)
from .models import Task

logger = logging.getLogger(__name__)


class AIDataSerializer(serializers.Serializer):
    ai_priority_score = serializers.IntegerField(min_value=0, max_value=100)
    reasoning = serializers.CharField(allow_blank=True)
    suggested_action = serializers.CharField(allow_blank=True)
    combined_score = serializers.IntegerField(min_value=0, max_value=11)
    is_vague = serializers.BooleanField()
    last_operation_cost = serializers.FloatField(min_value=0)
    input_tokens = serializers.IntegerField(min_value=0)
    output_tokens = serializers.IntegerField(min_value=0)


class TaskSerializer(serializers.ModelSerializer):
    tags = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False, allow_empty=True
    )
    ai_data = serializers.SerializerMethodField()

    class Meta:
        model = Task
        # explicit whitelist: user-editable fields + AI/system fields the UI reads
        fields = [
            'id', 'title', 'description', 'due_date', 'priority', 'status', 'category',
            'tags', 'instructions', 'ai_data', 'total_ai_cost',
            'created_at', 'completed_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'ai_data', 'total_ai_cost', 'created_at', 'completed_at', 'updated_at'
        ]

    def get_ai_data(self, obj):
        ai_data = obj.ai_data
        return ai_data.to_dict() if ai_data else None

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title cannot be blank.")
        return value.strip()

    def validate_tags(self, value):
        return [tag.strip() for tag in value if tag.strip()]

    def create(self, validated_data):
        """
        Persist the task with the authenticated user after running the AI
        create pipeline. The pipeline outcome is kept on
        ``self.processing_result`` for the view to report.
        """
        user = self.context['request'].user
        if not user or not user.is_authenticated:
            raise serializers.ValidationError("Authentication required to create a task.")

        task, self.processing_result = services.create_task(
            user, validated_data, api_key=self.context.get('api_key')
        )
        return task

    def update(self, instance, validated_data):
        task, self.processing_result = services.update_task(
            instance, validated_data, api_key=self.context.get('api_key')
        )
        return task


class QuickAddSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=1000)


class GroupedTasksQuerySerializer(serializers.Serializer):
    timeframe = serializers.ChoiceField(choices=TIMEFRAMES, default=TIMEFRAME_ALL)
    this_week_filter = serializers.ChoiceField(
        choices=(THIS_WEEK_FILTER_ALL, THIS_WEEK_FILTER_IMPORTANT), default=THIS_WEEK_FILTER_ALL
    )
    show_completed = serializers.BooleanField(default=False)


class ReprioritizeSerializer(serializers.Serializer):
    scope = serializers.ChoiceField(choices=SCOPES, default=SCOPE_ALL)
    background = serializers.BooleanField(default=False)


class TranscribeSerializer(serializers.Serializer):
    audio = serializers.FileField()


class VoiceParseSerializer(serializers.Serializer):
    transcript = serializers.CharField()
    create = serializers.BooleanField(default=False)


class InboundAIDataSerializer(AIDataSerializer):
    """Every field optional: the webhook may send only what changed."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            field.required = False


class InboundTaskUpdateSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(allow_blank=True, required=False)
    due_date = serializers.DateTimeField(required=False)
    priority = serializers.ChoiceField(choices=PRIORITIES, required=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    category = serializers.ChoiceField(choices=CATEGORIES, required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    completed_at = serializers.DateTimeField(allow_null=True, required=False)
    instructions = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    ai_data = InboundAIDataSerializer(required=False)
