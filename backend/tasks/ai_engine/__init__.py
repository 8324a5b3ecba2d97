# tasks/ai_engine/__init__.py
"""
AI Engine Package
=================

Scoring, classification and AI orchestration for task prioritization.
Everything in this package works on plain dataclasses (see ``contracts``);
``tasks.services`` is the only bridge to the ORM.

Modules:
--------
- catalog: Supported AI models, providers and pricing tables
- cost: Per-operation USD cost from token usage
- timeframe: Timeframe buckets, re-prioritization scopes, grouped view
- scoring: Combined score, priority mapping, sort order, importance predicate
- external_scorer: OpenAI-compatible client for prioritization, tags and transcripts
- cache: Django-cache layer for tag generation
- orchestrator: Single-task and bulk AI pipelines with degraded fallbacks
- transcriber: Whisper speech-to-text
- celery_tasks: Background bulk re-prioritization (imported by Celery autodiscovery)

Architecture:
-------------
The AIOrchestrator never raises on an AI failure. A single task comes back
as a ProcessingResult:

    {
        "task": DisplayTask,          # tags, priority, ai_data, total_ai_cost updated
        "ai_error": str | None,
        "api_key_available": bool,
        "ai_processed": bool
    }

and a bulk pass as a BulkResult with per-task error messages and the batch
cost.

Usage:
------
    from tasks.ai_engine import AIOrchestrator, AISettings

    orchestrator = AIOrchestrator(AISettings(model_id="googleai/gemini-1.5-flash-latest"))
    result = orchestrator.process_task(display_task, operation_type="create")
"""

from .cache import AITagCache
from .catalog import DEFAULT_AI_MODEL_ID, SUPPORTED_AI_MODELS, AIModelInfo, Provider, get_model
from .contracts import (
    AIPrioritizationResult,
    AISettings,
    BulkResult,
    DisplayTask,
    PriorityPreferences,
    ProcessingResult,
)
from .cost import calculate_cost
from .external_scorer import ExternalAIScorer
from .orchestrator import AIOrchestrator
from .scoring import compute_combined_score, is_task_important, map_score_to_priority, sort_tasks
from .timeframe import BUCKETS, SCOPES, classify_timeframe, group_tasks, tasks_for_scope

__all__ = [
    # Core classes
    "AIOrchestrator",
    "ExternalAIScorer",
    "AITagCache",
    "AIModelInfo",
    # Contracts
    "AIPrioritizationResult",
    "AISettings",
    "BulkResult",
    "DisplayTask",
    "PriorityPreferences",
    "ProcessingResult",
    # Functions
    "calculate_cost",
    "classify_timeframe",
    "compute_combined_score",
    "get_model",
    "group_tasks",
    "is_task_important",
    "map_score_to_priority",
    "sort_tasks",
    "tasks_for_scope",
    # Constants
    "BUCKETS",
    "DEFAULT_AI_MODEL_ID",
    "Provider",
    "SCOPES",
    "SUPPORTED_AI_MODELS",
]
