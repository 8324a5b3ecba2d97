# preferences/serializers.py

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from tasks.ai_engine.contracts import CATEGORIES

from .models import AppSettings, PriorityPreferences


class PriorityPreferencesSerializer(serializers.ModelSerializer):
    preferred_categories = serializers.ListField(
        child=serializers.ChoiceField(choices=CATEGORIES), required=False
    )
    custom_keywords = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )

    class Meta:
        model = PriorityPreferences
        fields = (
            'focus', 'urgency_threshold_preset', 'importance_aspect_preset',
            'preferred_categories', 'custom_keywords',
            'urgency_weight', 'importance_weight',
        )

    def validate(self, attrs):
        """Run the model's clean() against the merged values."""
        instance = self.instance or PriorityPreferences()
        candidate = PriorityPreferences(
            **{field: attrs.get(field, getattr(instance, field)) for field in self.Meta.fields}
        )
        try:
            candidate.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs


class AppSettingsSerializer(serializers.ModelSerializer):
    """
    Keys and secrets are write-only; reads only say whether one is set.
    """
    has_api_key = serializers.SerializerMethodField()
    has_openai_api_key = serializers.SerializerMethodField()
    has_incoming_webhook_secret = serializers.SerializerMethodField()

    class Meta:
        model = AppSettings
        fields = (
            'selected_ai_model', 'api_key', 'openai_api_key', 'webhook_url',
            'incoming_webhook_header_name', 'incoming_webhook_secret',
            'disable_incoming_webhook_auth', 'confirm_task_creation', 'last_batch_ai_cost',
            'has_api_key', 'has_openai_api_key', 'has_incoming_webhook_secret',
        )
        read_only_fields = ('last_batch_ai_cost',)
        extra_kwargs = {
            'api_key': {'write_only': True},
            'openai_api_key': {'write_only': True},
            'incoming_webhook_secret': {'write_only': True},
        }

    def get_has_api_key(self, obj):
        return bool(obj.api_key)

    def get_has_openai_api_key(self, obj):
        return bool(obj.openai_api_key)

    def get_has_incoming_webhook_secret(self, obj):
        return bool(obj.incoming_webhook_secret)

    def validate_selected_ai_model(self, value):
        # Ids outside the catalog are allowed: AI is skipped for them.
        return value.strip()

    def validate_incoming_webhook_header_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Header name cannot be blank.")
        return value.strip()

