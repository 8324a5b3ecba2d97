import uuid

from django.db import models
from django.conf import settings
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .ai_engine.contracts import (
    CATEGORIES,
    CATEGORY_OTHER,
    PRIORITIES,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUSES,
    AIPrioritizationResult,
)

PRIORITY_CHOICES = [(p, _(p)) for p in PRIORITIES]
STATUS_CHOICES = [(s, _(s)) for s in STATUSES]
CATEGORY_CHOICES = [(c, _(c)) for c in CATEGORIES]


class Task(models.Model):
    """
    A user's task plus the latest AI prioritization attached to it.

    The AI result lives in flat ``ai_*`` columns guarded by ``has_ai_data``;
    read and write it through the ``ai_data`` property.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tasks',
        verbose_name=_("user")
    )

    title = models.CharField(max_length=255, verbose_name=_("title"))
    description = models.TextField(blank=True, verbose_name=_("description"))

    due_date = models.DateTimeField(
        default=timezone.now,
        verbose_name=_("due date"),
        help_text=_("The deadline for the task.")
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORITY_CHOICES,
        default=PRIORITY_MEDIUM,
        verbose_name=_("priority"),
        help_text=_("Displayed priority: user-set, or mapped from the combined score after AI processing.")
    )
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        verbose_name=_("status")
    )
    category = models.CharField(
        max_length=20,
        choices=CATEGORY_CHOICES,
        default=CATEGORY_OTHER,
        verbose_name=_("category")
    )
    tags = models.JSONField(default=list, blank=True, verbose_name=_("tags"))
    instructions = models.TextField(
        null=True, blank=True,
        verbose_name=_("instructions"),
        help_text=_("Free-text notes, usually pushed in by the automation webhook.")
    )

    created_at = models.DateTimeField(default=timezone.now, verbose_name=_("created at"))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_("completed at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    # AI prioritization result
    has_ai_data = models.BooleanField(
        default=False,
        verbose_name=_("has AI data"),
        help_text=_("Flag indicating the ai_* columns hold a prioritization result.")
    )
    ai_priority_score = models.PositiveSmallIntegerField(default=0, verbose_name=_("AI priority score"))
    ai_reasoning = models.TextField(blank=True, verbose_name=_("AI reasoning"))
    ai_suggested_action = models.TextField(blank=True, verbose_name=_("AI suggested action"))
    combined_score = models.PositiveSmallIntegerField(
        default=0,
        verbose_name=_("combined score"),
        help_text=_("Ranking ordinal (0-11) from user priority, due date and AI score.")
    )
    is_vague = models.BooleanField(default=False, verbose_name=_("is vague"))
    last_operation_cost = models.FloatField(default=0.0, verbose_name=_("last AI operation cost (USD)"))
    input_tokens = models.PositiveIntegerField(default=0, verbose_name=_("input tokens"))
    output_tokens = models.PositiveIntegerField(default=0, verbose_name=_("output tokens"))
    total_ai_cost = models.FloatField(
        default=0.0,
        verbose_name=_("total AI cost (USD)"),
        help_text=_("Cumulative AI spend on this task. Never decreases.")
    )

    class Meta:
        verbose_name = _("Task")
        verbose_name_plural = _("Tasks")
        ordering = ['due_date', '-created_at']

    def __str__(self):
        return f"Task for {self.user.email}: {self.title}"

    @property
    def ai_data(self):
        if not self.has_ai_data:
            return None
        return AIPrioritizationResult(
            ai_priority_score=self.ai_priority_score,
            reasoning=self.ai_reasoning,
            suggested_action=self.ai_suggested_action,
            combined_score=self.combined_score,
            is_vague=self.is_vague,
            last_operation_cost=self.last_operation_cost,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    @ai_data.setter
    def ai_data(self, result):
        if result is None:
            self.has_ai_data = False
            self.ai_priority_score = 0
            self.ai_reasoning = ""
            self.ai_suggested_action = ""
            self.combined_score = 0
            self.is_vague = False
            self.last_operation_cost = 0.0
            self.input_tokens = 0
            self.output_tokens = 0
            return
        self.has_ai_data = True
        self.ai_priority_score = result.ai_priority_score
        self.ai_reasoning = result.reasoning
        self.ai_suggested_action = result.suggested_action
        self.combined_score = result.combined_score
        self.is_vague = result.is_vague
        self.last_operation_cost = result.last_operation_cost
        self.input_tokens = result.input_tokens
        self.output_tokens = result.output_tokens

    def save(self, *args, **kwargs):
        # completed_at is set iff the task is completed
        if self.status == STATUS_COMPLETED:
            if self.completed_at is None:
                self.completed_at = timezone.now()
        else:
            self.completed_at = None
        super().save(*args, **kwargs)
