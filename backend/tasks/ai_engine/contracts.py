# tasks/ai_engine/contracts.py
"""
Plain data contracts passed between the AI engine and the Django layer.

Nothing here touches the ORM: ``tasks.services`` converts model rows into
``DisplayTask`` values, hands them to the engine and writes the results back.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog import DEFAULT_AI_MODEL_ID

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

PRIORITY_LOW = "Low"
PRIORITY_MEDIUM = "Medium"
PRIORITY_HIGH = "High"
PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

STATUS_PENDING = "Pending"
STATUS_COMPLETED = "Completed"
STATUSES = (STATUS_PENDING, STATUS_COMPLETED)

CATEGORY_OTHER = "Other"
CATEGORY_PERSONAL = "Personal"
CATEGORIES = (
    "Work",
    CATEGORY_PERSONAL,
    "Learning",
    "Health",
    "Finance",
    "Home Chores",
    "Errands",
    CATEGORY_OTHER,
)

FOCUS_DEADLINES = "Deadlines"
FOCUS_IMPORTANCE = "Importance"
FOCUS_CATEGORIES = "Categories"
FOCUS_BALANCED = "Balanced"
FOCUS_CHOICES = (FOCUS_DEADLINES, FOCUS_IMPORTANCE, FOCUS_CATEGORIES, FOCUS_BALANCED)

URGENCY_PRESET_DAYS = {"1 day": 1, "3 days": 3, "1 week": 7}
URGENCY_PRESETS = tuple(URGENCY_PRESET_DAYS)
IMPORTANCE_ASPECTS = ("Work/Career", "Affecting Others", "High Stakes")

DEFAULT_CUSTOM_KEYWORDS = ("urgent", "deadline", "critical", "blocker")
DEFAULT_URGENCY_WEIGHT = 0.4
DEFAULT_IMPORTANCE_WEIGHT = 0.6
MAX_PREFERRED_CATEGORIES = 3

OPERATION_CREATE = "create"
OPERATION_UPDATE = "update"
OPERATION_REPRIORITIZE = "reprioritize"
OPERATION_BULK = "bulk"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class AIPrioritizationResult:
    ai_priority_score: int
    reasoning: str
    suggested_action: str
    combined_score: int = 0
    is_vague: bool = False
    last_operation_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ai_priority_score": self.ai_priority_score,
            "reasoning": self.reasoning,
            "suggested_action": self.suggested_action,
            "combined_score": self.combined_score,
            "is_vague": self.is_vague,
            "last_operation_cost": self.last_operation_cost,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }


@dataclass
class PriorityPreferences:
    focus: str = FOCUS_BALANCED
    urgency_threshold_preset: Optional[str] = None
    importance_aspect_preset: Optional[str] = None
    preferred_categories: List[str] = field(default_factory=list)
    custom_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_CUSTOM_KEYWORDS))
    urgency_weight: float = DEFAULT_URGENCY_WEIGHT
    importance_weight: float = DEFAULT_IMPORTANCE_WEIGHT

    @property
    def urgency_window_days(self) -> int:
        """Days counted as "urgent": the preset under a Deadlines focus, else a week."""
        if self.focus == FOCUS_DEADLINES:
            return URGENCY_PRESET_DAYS.get(self.urgency_threshold_preset or "", 7)
        return 7


@dataclass
class DisplayTask:
    id: str
    title: str
    description: str
    due_date: datetime.datetime
    priority: str = PRIORITY_MEDIUM
    status: str = STATUS_PENDING
    category: str = CATEGORY_OTHER
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    instructions: Optional[str] = None
    ai_data: Optional[AIPrioritizationResult] = None
    total_ai_cost: float = 0.0


@dataclass
class AISettings:
    """Per-request AI configuration: which model to call and the user's key."""

    model_id: str = DEFAULT_AI_MODEL_ID
    api_key: Optional[str] = None
    preferences: PriorityPreferences = field(default_factory=PriorityPreferences)


@dataclass
class ProcessingResult:
    task: DisplayTask
    ai_error: Optional[str]
    api_key_available: bool
    ai_processed: bool


@dataclass
class BulkResult:
    tasks: List[DisplayTask]
    ai_processed_count: int
    total_tasks: int
    ai_error_messages: List[str]
    batch_ai_cost: float
    error: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "ai_processed_count": self.ai_processed_count,
            "total_tasks": self.total_tasks,
            "ai_error_messages": list(self.ai_error_messages),
            "batch_ai_cost": self.batch_ai_cost,
            "error": self.error,
        }
