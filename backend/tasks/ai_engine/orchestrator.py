# tasks/ai_engine/orchestrator.py

import dataclasses
import datetime
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.conf import settings

from .cache import AITagCache
from .catalog import DEFAULT_AI_MODEL_ID, PROVIDER_KEY_SETTINGS, Provider, resolve_provider
from .contracts import (
    FOCUS_CATEGORIES,
    FOCUS_DEADLINES,
    FOCUS_IMPORTANCE,
    OPERATION_BULK,
    OPERATION_CREATE,
    OPERATION_REPRIORITIZE,
    OPERATION_UPDATE,
    STATUS_COMPLETED,
    AIPrioritizationResult,
    AISettings,
    BulkResult,
    DisplayTask,
    PriorityPreferences,
    ProcessingResult,
)
from .cost import calculate_cost
from .dates import local_date, local_today
from .external_scorer import (
    ERROR_INVALID_API_KEY,
    ERROR_MODEL_NOT_FOUND,
    ERROR_QUOTA_EXCEEDED,
    ExternalAIScorer,
)
from .scoring import compute_combined_score, map_score_to_priority

logger = logging.getLogger(__name__)

KEY_SOURCE_SETTINGS = "settings"
KEY_SOURCE_NONE = "none"

REVIEW_MANUALLY = "Review manually."

OPERATION_HINTS = {
    OPERATION_CREATE: " This is a new task. Consider the user-provided priority as a strong initial signal.",
    OPERATION_UPDATE: " This task's details have been updated. Re-evaluate based on new information.",
    OPERATION_REPRIORITIZE: " This task is being re-prioritized along with others. Evaluate its current standing.",
    OPERATION_BULK: (
        " This task is part of a bulk re-prioritization. Evaluate its current standing "
        "based on all available information and user preferences."
    ),
}

TaskCallback = Callable[[DisplayTask], Any]


class AIOrchestrator:
    """
    Runs the AI pipeline for one user's request.

    A single task goes through: key resolution, optional tag generation,
    prioritization, cost accounting and combined-score recomputation. Every
    AI failure degrades to heuristic scoring; nothing here raises on a
    provider error, so task persistence is never blocked by AI.

    ``process_task`` returns a ProcessingResult:
      {task, ai_error, api_key_available, ai_processed}

    ``process_scope`` returns a BulkResult:
      {tasks, ai_processed_count, total_tasks, ai_error_messages, batch_ai_cost, error}
    """

    def __init__(
        self,
        ai_settings: Optional[AISettings] = None,
        today: Optional[datetime.date] = None,
        tz: Optional[datetime.tzinfo] = None,
    ):
        ai_settings = ai_settings or AISettings()
        self.model_id: str = ai_settings.model_id or DEFAULT_AI_MODEL_ID
        self.preferences: PriorityPreferences = ai_settings.preferences or PriorityPreferences()
        self.provider: Provider = resolve_provider(self.model_id)
        self.api_key, self.api_key_source = self.resolve_api_key(self.model_id, ai_settings.api_key)
        self.tz = tz
        self.today = today or local_today(tz)
        self.tag_cache = AITagCache()
        self._scorer: Optional[ExternalAIScorer] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_api_key(model_id: str, explicit_key: Optional[str] = None) -> Tuple[Optional[str], str]:
        """
        Explicit key (user settings / request) first, then the environment key
        for the model's provider. Returns ``(key, source)``.
        """
        if explicit_key:
            return explicit_key, KEY_SOURCE_SETTINGS
        setting_name, source = PROVIDER_KEY_SETTINGS.get(resolve_provider(model_id), (None, KEY_SOURCE_NONE))
        env_key = getattr(settings, setting_name, None) if setting_name else None
        if env_key:
            return env_key, source
        return None, KEY_SOURCE_NONE

    @property
    def api_key_available(self) -> bool:
        return bool(self.api_key)

    @property
    def is_supported_model(self) -> bool:
        return self.provider is not Provider.OTHER

    @property
    def scorer(self) -> ExternalAIScorer:
        if self._scorer is None:
            self._scorer = ExternalAIScorer(model_id=self.model_id, api_key=self.api_key)
        return self._scorer

    def build_preference_context(self, operation_type: Optional[str] = None) -> str:
        """Natural-language summary of the user's preferences for the prompt."""
        prefs = self.preferences
        parts = [f"User's primary prioritization focus is '{prefs.focus}'."]

        if prefs.focus == FOCUS_DEADLINES and prefs.urgency_threshold_preset:
            parts.append(
                f"They consider tasks due within '{prefs.urgency_threshold_preset}' as particularly urgent."
            )
        if prefs.focus == FOCUS_IMPORTANCE and prefs.importance_aspect_preset:
            parts.append(
                f"Key aspects of importance for them include: '{prefs.importance_aspect_preset}'."
            )
        if prefs.focus == FOCUS_CATEGORIES and prefs.preferred_categories:
            parts.append(
                f"They are focusing on these task categories: {', '.join(prefs.preferred_categories)}."
            )
        if prefs.custom_keywords:
            parts.append(f"Pay special attention to these keywords: {', '.join(prefs.custom_keywords)}.")

        return " ".join(parts) + OPERATION_HINTS.get(operation_type, "")

    # ------------------------------------------------------------------
    # Single task
    # ------------------------------------------------------------------

    def process_task(
        self,
        task: DisplayTask,
        operation_type: str = OPERATION_CREATE,
        force_regenerate_tags: bool = False,
        original_title: Optional[str] = None,
        original_description: Optional[str] = None,
    ) -> ProcessingResult:
        ai_error: Optional[str] = None
        ai_processed = False
        tags = list(task.tags)
        prioritization: Optional[Dict[str, Any]] = None
        input_tokens = output_tokens = 0

        if self.is_supported_model and self.api_key_available:
            # --- TAGS ---
            if self._should_generate_tags(
                task, operation_type, force_regenerate_tags, original_title, original_description
            ):
                logger.info(
                    f"Generating tags for '{task.title}' with {self.model_id} (key source: {self.api_key_source})"
                )
                tag_result = self.tag_cache.get_or_set_tags(
                    self.model_id,
                    task.title,
                    task.description,
                    lambda: self.scorer.generate_tags(task.title, task.description),
                )
                input_tokens += tag_result.get("input_tokens", 0)
                output_tokens += tag_result.get("output_tokens", 0)
                if tag_result.get("error_code"):
                    ai_error = f"Tag Generation Error: {tag_result.get('error_message')}"
                    logger.warning(ai_error)
                else:
                    tags = tag_result.get("tags", [])

            # --- PRIORITIZATION ---
            logger.info(
                f"Prioritizing '{task.title}' (operation: {operation_type}) with {self.model_id} "
                f"(key source: {self.api_key_source})"
            )
            response = self.scorer.prioritize_task(
                self._task_payload(task, tags), self.build_preference_context(operation_type)
            )
            input_tokens += response.get("input_tokens", 0)
            output_tokens += response.get("output_tokens", 0)
            if response.get("error_code"):
                prioritization_error = f"Prioritization Error: {self._describe_failure(response, prefixed=True)}"
                logger.error(prioritization_error)
                ai_error = f"{ai_error}. {prioritization_error}" if ai_error else prioritization_error
            else:
                prioritization = response
                ai_processed = True

        elif not self.is_supported_model:
            ai_error = (
                f"AI features for model '{self.model_id}' are not integrated or model provider "
                f"is unsupported. Task processed without AI features."
            )
            logger.warning(ai_error)
        else:
            ai_error = (
                f"API Key not available for model {self.model_id} (source: {self.api_key_source}). "
                f"AI features skipped."
            )
            logger.warning(ai_error)

        operation_cost = calculate_cost(self.model_id, input_tokens, output_tokens)
        ai_score = prioritization["ai_priority_score"] if prioritization else None
        combined = self._combined_score(task, ai_score)

        if prioritization:
            ai_data = AIPrioritizationResult(
                ai_priority_score=prioritization["ai_priority_score"],
                reasoning=prioritization["reasoning"],
                suggested_action=prioritization["suggested_action"],
                combined_score=combined,
                is_vague=prioritization["is_vague"],
                last_operation_cost=operation_cost,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )
        else:
            ai_data = AIPrioritizationResult(
                ai_priority_score=0,
                reasoning=ai_error or "AI processing not fully completed or failed.",
                suggested_action=REVIEW_MANUALLY,
                combined_score=combined,
                last_operation_cost=operation_cost,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        processed = dataclasses.replace(
            task,
            tags=tags,
            priority=map_score_to_priority(combined) if ai_processed else task.priority,
            ai_data=ai_data,
            total_ai_cost=round((task.total_ai_cost or 0.0) + operation_cost, 6),
        )
        return ProcessingResult(
            task=processed,
            ai_error=ai_error,
            api_key_available=self.api_key_available,
            ai_processed=ai_processed,
        )

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def process_scope(
        self,
        tasks: Iterable[DisplayTask],
        on_task_processed: Optional[TaskCallback] = None,
    ) -> BulkResult:
        """
        Re-prioritize every pending task in ``tasks``, one at a time and in
        list order. Completed tasks pass through untouched. Tags are left as
        they are.

        ``on_task_processed`` runs after each pending task resolves, before
        the next one starts.
        """
        tasks = list(tasks)
        total = sum(1 for t in tasks if t.status != STATUS_COMPLETED)

        if total and self.is_supported_model and not self.api_key_available:
            return self._short_circuit_missing_key(tasks, total, on_task_processed)

        results: List[DisplayTask] = []
        error_messages: List[str] = []
        processed_count = 0
        batch_cost = 0.0

        for task in tasks:
            if task.status == STATUS_COMPLETED:
                results.append(task)
                continue

            if self.is_supported_model:
                updated, cost, error = self._reprioritize_one(task)
                batch_cost += cost
                if error:
                    error_messages.append(f'Task "{task.title}": {error}')
                else:
                    processed_count += 1
            else:
                updated = self._skip_unsupported(task)
                error_messages.append(
                    f"Task \"{task.title}\": Skipped AI re-prioritization for unsupported model '{self.model_id}'."
                )

            results.append(updated)
            if on_task_processed is not None:
                on_task_processed(updated)

        batch_cost = round(batch_cost, 6)
        logger.info(
            f"Bulk re-prioritization: {processed_count}/{total} pending tasks AI-processed. "
            f"Batch cost: ${batch_cost:.6f}. Errors: {len(error_messages)}"
        )
        return BulkResult(
            tasks=results,
            ai_processed_count=processed_count,
            total_tasks=total,
            ai_error_messages=error_messages,
            batch_ai_cost=batch_cost,
        )

    def _reprioritize_one(self, task: DisplayTask) -> Tuple[DisplayTask, float, Optional[str]]:
        logger.info(f"Re-prioritizing '{task.title}' with {self.model_id} (key source: {self.api_key_source})")
        response = self.scorer.prioritize_task(
            self._task_payload(task, task.tags), self.build_preference_context(OPERATION_BULK)
        )
        input_tokens = response.get("input_tokens", 0)
        output_tokens = response.get("output_tokens", 0)
        cost = calculate_cost(self.model_id, input_tokens, output_tokens)

        if response.get("error_code"):
            error = self._describe_failure(response)
            logger.error(f"Error re-prioritizing '{task.title}': {error}")
            prior = task.ai_data
            if prior:
                lead = f"{prior.reasoning}. " if prior.reasoning else ""
                reasoning = f"{lead}Reprioritization attempt failed: {error}"
            else:
                reasoning = f"AI re-prioritization attempt failed: {error}"
            # Priority stays as it was.
            ai_data = AIPrioritizationResult(
                ai_priority_score=prior.ai_priority_score if prior else 0,
                reasoning=reasoning,
                suggested_action=prior.suggested_action if prior else REVIEW_MANUALLY,
                combined_score=self._combined_score(task, prior.ai_priority_score if prior else None),
                is_vague=prior.is_vague if prior else False,
                last_operation_cost=cost,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )
            updated = dataclasses.replace(
                task, ai_data=ai_data, total_ai_cost=round((task.total_ai_cost or 0.0) + cost, 6)
            )
            return updated, cost, error

        combined = self._combined_score(task, response["ai_priority_score"])
        ai_data = AIPrioritizationResult(
            ai_priority_score=response["ai_priority_score"],
            reasoning=response["reasoning"],
            suggested_action=response["suggested_action"],
            combined_score=combined,
            is_vague=response["is_vague"],
            last_operation_cost=cost,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        updated = dataclasses.replace(
            task,
            priority=map_score_to_priority(combined),
            ai_data=ai_data,
            total_ai_cost=round((task.total_ai_cost or 0.0) + cost, 6),
        )
        return updated, cost, None

    def _skip_unsupported(self, task: DisplayTask) -> DisplayTask:
        reasoning = f"AI processing skipped for model '{self.model_id}' (unsupported provider)."
        return self._with_heuristic_score(task, reasoning)

    def _short_circuit_missing_key(
        self, tasks: List[DisplayTask], total: int, on_task_processed: Optional[TaskCallback]
    ) -> BulkResult:
        logger.warning(
            f"No API key for model {self.model_id} (source: {self.api_key_source}); "
            f"skipping AI for {total} pending task(s)."
        )
        reasoning = (
            f"API key missing (source: {self.api_key_source}). AI re-prioritization cannot be "
            f"performed for model {self.model_id}."
        )
        results: List[DisplayTask] = []
        for task in tasks:
            if task.status == STATUS_COMPLETED:
                results.append(task)
                continue
            updated = self._with_heuristic_score(task, reasoning)
            results.append(updated)
            if on_task_processed is not None:
                on_task_processed(updated)

        return BulkResult(
            tasks=results,
            ai_processed_count=0,
            total_tasks=total,
            ai_error_messages=[
                f"API Key missing for all pending tasks requiring model {self.model_id} "
                f"(source: {self.api_key_source})."
            ],
            batch_ai_cost=0.0,
            error=(
                f"API Key not available (source: {self.api_key_source}) for model {self.model_id}. "
                f"AI re-prioritization cannot be performed for pending tasks."
            ),
        )

    def _with_heuristic_score(self, task: DisplayTask, reasoning: str) -> DisplayTask:
        """Keep existing AI data (or a synthetic record) with a fresh combined score."""
        prior = task.ai_data
        combined = self._combined_score(task, prior.ai_priority_score if prior else None)
        if prior:
            ai_data = dataclasses.replace(
                prior, combined_score=combined, reasoning=prior.reasoning or reasoning, last_operation_cost=0.0
            )
        else:
            ai_data = AIPrioritizationResult(
                ai_priority_score=0,
                reasoning=reasoning,
                suggested_action=REVIEW_MANUALLY,
                combined_score=combined,
            )
        return dataclasses.replace(task, ai_data=ai_data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _should_generate_tags(
        self,
        task: DisplayTask,
        operation_type: str,
        force: bool,
        original_title: Optional[str],
        original_description: Optional[str],
    ) -> bool:
        if force or not task.tags:
            return True
        if operation_type != OPERATION_UPDATE:
            return False
        title_changed = original_title is not None and task.title != original_title
        description_changed = original_description is not None and task.description != original_description
        return title_changed or description_changed

    def _combined_score(self, task: DisplayTask, ai_score: Optional[int]) -> int:
        return compute_combined_score(
            task.priority, task.due_date, ai_score, self.preferences, today=self.today, tz=self.tz
        )

    def _task_payload(self, task: DisplayTask, tags: List[str]) -> Dict[str, Any]:
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "category": task.category,
            "tags": tags,
            "due_date": local_date(task.due_date, self.tz).isoformat(),
            "priority": task.priority,
        }

    def _describe_failure(self, response: Dict[str, Any], prefixed: bool = False) -> str:
        """
        Human-readable message for a failed prioritization call. ``prefixed``
        adds the "AI Prioritization failed:" lead used for single tasks.
        """
        code = response.get("error_code")
        message = response.get("error_message") or "Unknown AI prioritization error"

        if code == ERROR_INVALID_API_KEY:
            env_name = PROVIDER_KEY_SETTINGS.get(self.provider, ("API key", ""))[0]
            message = (
                f"Invalid or missing API Key. Ensure {env_name} is set on the server or a valid key "
                f"is provided in settings for the selected model provider. (Source: {self.api_key_source})"
            )
        elif code not in (ERROR_QUOTA_EXCEEDED, ERROR_MODEL_NOT_FOUND):
            return message

        return f"AI Prioritization failed: {message}" if prefixed else message
