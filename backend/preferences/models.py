from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator

from tasks.ai_engine.catalog import DEFAULT_AI_MODEL_ID
from tasks.ai_engine.contracts import (
    CATEGORIES,
    DEFAULT_CUSTOM_KEYWORDS,
    DEFAULT_IMPORTANCE_WEIGHT,
    DEFAULT_URGENCY_WEIGHT,
    FOCUS_BALANCED,
    FOCUS_CHOICES,
    IMPORTANCE_ASPECTS,
    MAX_PREFERRED_CATEGORIES,
    URGENCY_PRESETS,
    PriorityPreferences as PriorityPreferencesData,
)

DEFAULT_INCOMING_HEADER_NAME = 'X-TaskHook-Secret'


def default_custom_keywords():
    return list(DEFAULT_CUSTOM_KEYWORDS)


class PriorityPreferences(models.Model):
    """
    Per-user configuration for the scoring engine and the AI prompt.
    Only the detail field selected by ``focus`` is meaningful.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="priority_preferences"
    )

    focus = models.CharField(
        max_length=20,
        choices=[(f, _(f)) for f in FOCUS_CHOICES],
        default=FOCUS_BALANCED,
        help_text=_("Primary prioritization strategy.")
    )
    urgency_threshold_preset = models.CharField(
        max_length=10,
        choices=[(p, p) for p in URGENCY_PRESETS],
        null=True, blank=True,
        help_text=_("Deadline window treated as urgent (Deadlines focus).")
    )
    importance_aspect_preset = models.CharField(
        max_length=20,
        choices=[(a, a) for a in IMPORTANCE_ASPECTS],
        null=True, blank=True,
        help_text=_("What counts as important (Importance focus).")
    )
    preferred_categories = models.JSONField(
        default=list, blank=True,
        help_text=_("Up to three categories to favour (Categories focus).")
    )
    custom_keywords = models.JSONField(
        default=default_custom_keywords, blank=True,
        help_text=_("Keywords the AI should treat as priority hints.")
    )
    urgency_weight = models.FloatField(
        default=DEFAULT_URGENCY_WEIGHT,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
    )
    importance_weight = models.FloatField(
        default=DEFAULT_IMPORTANCE_WEIGHT,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
    )

    class Meta:
        verbose_name = "Priority Preferences"
        verbose_name_plural = "Priority Preferences"

    def __str__(self):
        return f"Priority preferences for {self.user.email}"

    def clean(self):
        categories = self.preferred_categories or []
        if not isinstance(categories, list):
            raise ValidationError({"preferred_categories": "Must be a list of categories."})
        if len(categories) > MAX_PREFERRED_CATEGORIES:
            raise ValidationError(
                {"preferred_categories": f"Select at most {MAX_PREFERRED_CATEGORIES} categories."}
            )
        unknown = [c for c in categories if c not in CATEGORIES]
        if unknown:
            raise ValidationError({"preferred_categories": f"Unknown categories: {', '.join(map(str, unknown))}"})

        keywords = self.custom_keywords or []
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ValidationError({"custom_keywords": "Must be a list of strings."})
        self.custom_keywords = [k.strip() for k in keywords if k.strip()]

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_contract(self) -> PriorityPreferencesData:
        return PriorityPreferencesData(
            focus=self.focus,
            urgency_threshold_preset=self.urgency_threshold_preset,
            importance_aspect_preset=self.importance_aspect_preset,
            preferred_categories=list(self.preferred_categories or []),
            custom_keywords=list(self.custom_keywords or []),
            urgency_weight=self.urgency_weight,
            importance_weight=self.importance_weight,
        )


class AppSettings(models.Model):
    """
    Per-user integration settings: AI model and keys, outbound webhook,
    inbound webhook secret.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="app_settings"
    )

    selected_ai_model = models.CharField(max_length=100, default=DEFAULT_AI_MODEL_ID)
    api_key = models.CharField(
        max_length=255, blank=True, default="",
        help_text=_("Key for the selected AI provider. Falls back to the server environment.")
    )
    openai_api_key = models.CharField(
        max_length=255, blank=True, default="",
        help_text=_("OpenAI key used for voice transcription.")
    )
    webhook_url = models.URLField(
        max_length=500, blank=True, default="",
        help_text=_("Outbound task events are POSTed here.")
    )
    incoming_webhook_header_name = models.CharField(max_length=100, default=DEFAULT_INCOMING_HEADER_NAME)
    incoming_webhook_secret = models.CharField(max_length=255, blank=True, default="")
    disable_incoming_webhook_auth = models.BooleanField(default=False)
    confirm_task_creation = models.BooleanField(default=False)
    last_batch_ai_cost = models.FloatField(
        default=0.0,
        help_text=_("AI cost of the most recent bulk re-prioritization (USD).")
    )

    class Meta:
        verbose_name = "App Settings"
        verbose_name_plural = "App Settings"

    def __str__(self):
        return f"Settings for {self.user.email}"
