# tasks/tests/test_orchestration.py
"""
AI Orchestration Integration Tests
==================================

This module contains integration tests for the AI prioritization pipeline.

Test Philosophy:
----------------
- Mock external dependencies (OpenAI-compatible API) to avoid costs and flakiness
- Test the full flow from Celery task to database persistence
- Verify error handling paths degrade instead of crashing
- Account for every token: cost is part of the contract

Test Categories:
----------------
1. Scorer Tests - Provider calls, response validation, error mapping
2. Orchestrator Tests - Single-task pipeline, success and degraded paths
3. Bulk Tests - Scope re-prioritization, short-circuit, callback order
4. Cache Tests - Tag cache hits cost nothing
5. Worker Tests - The Celery task end to end
"""

from __future__ import annotations

import datetime
import json
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from openai import APITimeoutError, BadRequestError, RateLimitError

from tasks.ai_engine.cache import AITagCache
from tasks.ai_engine.contracts import (
    FOCUS_DEADLINES,
    OPERATION_CREATE,
    OPERATION_UPDATE,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    AIPrioritizationResult,
    AISettings,
    DisplayTask,
    PriorityPreferences,
)
from tasks.ai_engine.celery_tasks import run_scope_reprioritization
from tasks.ai_engine.cost import calculate_cost
from tasks.ai_engine.external_scorer import ExternalAIScorer
from tasks.ai_engine.orchestrator import AIOrchestrator
from tasks.models import Task

User = get_user_model()

UTC = datetime.timezone.utc
TODAY = datetime.date(2026, 10, 5)
FLASH = "googleai/gemini-1.5-flash-latest"


# ===========================================================================
# HELPER FIXTURES
# ===========================================================================


def create_mock_completion(
    content: Any,
    prompt_tokens: int = 100,
    completion_tokens: int = 50,
) -> MagicMock:
    """
    Create a mock chat completion response.

    Args:
        content: Dict (serialized to JSON) or raw string body.
        prompt_tokens: Reported input tokens.
        completion_tokens: Reported output tokens.
    """
    mock_choice = MagicMock()
    mock_choice.message.content = json.dumps(content) if isinstance(content, dict) else content

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage.prompt_tokens = prompt_tokens
    mock_response.usage.completion_tokens = completion_tokens
    return mock_response


def prioritization(score: int = 85, **overrides: Any) -> dict:
    body = {
        "ai_priority_score": score,
        "reasoning": "Due soon and work related.",
        "suggested_action": "Block an hour this morning.",
        "is_vague": False,
    }
    body.update(overrides)
    return body


def provider_error(error_class, status_code: int, message: str):
    request = httpx.Request("POST", "https://example.test/v1/chat/completions")
    return error_class(message, response=httpx.Response(status_code, request=request), body=None)


def make_display_task(
    title: str = "Prepare quarterly report",
    description: str = "Numbers for the board",
    due: datetime.date = TODAY,
    **overrides: Any,
) -> DisplayTask:
    fields = dict(
        id=title,
        title=title,
        description=description,
        due_date=datetime.datetime(due.year, due.month, due.day, 12, tzinfo=UTC),
    )
    fields.update(overrides)
    return DisplayTask(**fields)


def make_orchestrator(model_id: str = FLASH, api_key: str | None = "test-key", preferences=None) -> AIOrchestrator:
    return AIOrchestrator(
        AISettings(model_id=model_id, api_key=api_key, preferences=preferences or PriorityPreferences()),
        today=TODAY,
        tz=UTC,
    )


def create_test_user(username: str = "testuser") -> User:
    """Create a test user with unique username."""
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
    )


# ===========================================================================
# EXTERNAL SCORER TESTS
# ===========================================================================


class TestExternalAIScorer(TestCase):
    """Tests for the ExternalAIScorer service class."""

    def test_scorer_initializes_without_api_key(self) -> None:
        """Scorer should not crash when API key is missing."""
        scorer = ExternalAIScorer(FLASH, api_key=None)

        self.assertFalse(scorer.is_configured)
        self.assertIn("no api key", scorer.configuration_error.lower())

    def test_scorer_rejects_unsupported_provider(self) -> None:
        scorer = ExternalAIScorer("unknown/foo", api_key="test-key")

        self.assertFalse(scorer.is_configured)
        result = scorer.prioritize_task({"title": "x"})
        self.assertEqual(result["error_code"], "SCORER_NOT_CONFIGURED")
        self.assertEqual(result["input_tokens"], 0)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_prioritize_returns_normalized_score_and_tokens(self, mock_openai_class: MagicMock) -> None:
        """Scores are rounded to int and usage is reported."""
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.return_value = create_mock_completion(
            prioritization(82.4), prompt_tokens=120, completion_tokens=40
        )

        scorer = ExternalAIScorer(FLASH, api_key="test-key")
        result = scorer.prioritize_task({"title": "Pay rent", "due_date": "2026-10-05"})

        mock_client.chat.completions.create.assert_called_once()
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        self.assertEqual(call_kwargs["model"], "gemini-1.5-flash-latest")
        self.assertEqual(call_kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(result["ai_priority_score"], 82)
        self.assertEqual(result["input_tokens"], 120)
        self.assertEqual(result["output_tokens"], 40)
        self.assertFalse(result["is_vague"])

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_score_is_clamped_to_range(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            prioritization(150)
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["ai_priority_score"], 100)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_is_vague_accepts_only_true(self, mock_openai_class: MagicMock) -> None:
        """String answers are read literally; anything but true is not vague."""
        scorer = ExternalAIScorer(FLASH, api_key="test-key")
        cases = [("false", False), ("False", False), ("true", True), (True, True), (1, False), (None, False)]

        for raw, expected in cases:
            with self.subTest(is_vague=raw):
                mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
                    prioritization(10, is_vague=raw)
                )
                self.assertIs(scorer.prioritize_task({"title": "x"})["is_vague"], expected)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_missing_score_is_validation_error_with_tokens(self, mock_openai_class: MagicMock) -> None:
        """Tokens spent on an unusable answer are still reported."""
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            {"reasoning": "no score"}, prompt_tokens=90, completion_tokens=10
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "VALIDATION_ERROR")
        self.assertEqual(result["input_tokens"], 90)
        self.assertEqual(result["output_tokens"], 10)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_invalid_json_is_parse_error(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            "Sure! Here is the score: 80"
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "JSON_PARSE_ERROR")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_empty_prioritization_is_an_error(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion("   ")

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "EMPTY_RESPONSE")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_malformed_tags_answer_yields_empty_list(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            "not json", prompt_tokens=30, completion_tokens=5
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").generate_tags("Pay rent", "")

        self.assertNotIn("error_code", result)
        self.assertEqual(result["tags"], [])
        self.assertEqual(result["input_tokens"], 30)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_tags_are_trimmed_and_capped(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            {"tags": [" finance ", "", "rent", None, "monthly", "home", "bills", "extra"]}
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").generate_tags("Pay rent", "")

        self.assertEqual(result["tags"], ["finance", "rent", "monthly", "home", "bills"])

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_scorer_handles_api_timeout(self, mock_openai_class: MagicMock) -> None:
        """Scorer should handle API timeout gracefully."""
        mock_openai_class.return_value.chat.completions.create.side_effect = APITimeoutError(
            request=MagicMock()
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "TIMEOUT")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_rate_limit_maps_to_quota_exceeded(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.side_effect = provider_error(
            RateLimitError, 429, "Resource has been exhausted"
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "QUOTA_EXCEEDED")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_gemini_bad_key_400_maps_to_invalid_key(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.side_effect = provider_error(
            BadRequestError, 400, "API key not valid. Please pass a valid API key."
        )

        result = ExternalAIScorer(FLASH, api_key="bad-key").prioritize_task({"title": "x"})

        self.assertEqual(result["error_code"], "INVALID_API_KEY")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_transcript_drafts(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.return_value = create_mock_completion(
            {
                "tasks": [
                    {"title": "Call the dentist", "description": "", "due_date": "2026-10-06"},
                    {"title": "", "description": "something", "due_date": "next week"},
                    "garbage",
                ]
            }
        )

        result = ExternalAIScorer(FLASH, api_key="test-key").parse_voice_transcript(
            "Call the dentist tomorrow and something", today=TODAY
        )

        drafts = result["parsed_tasks"]
        self.assertEqual(len(drafts), 2)
        self.assertEqual(drafts[0]["title"], "Call the dentist")
        self.assertEqual(drafts[0]["description"], "Call the dentist")
        self.assertEqual(drafts[0]["due_date"], datetime.date(2026, 10, 6))
        self.assertEqual(drafts[1]["title"], "Untitled Task")
        self.assertIsNone(drafts[1]["due_date"])


# ===========================================================================
# ORCHESTRATOR TESTS
# ===========================================================================


class TestAIOrchestrator(TestCase):
    """Single-task pipeline: tags, prioritization, cost, combined score."""

    def setUp(self) -> None:
        cache.clear()

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_create_success_path(self, mock_openai_class: MagicMock) -> None:
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.side_effect = [
            create_mock_completion({"tags": ["work", "report"]}, prompt_tokens=100, completion_tokens=20),
            create_mock_completion(prioritization(85), prompt_tokens=400, completion_tokens=80),
        ]

        result = make_orchestrator().process_task(make_display_task(), OPERATION_CREATE)

        self.assertTrue(result.ai_processed)
        self.assertTrue(result.api_key_available)
        self.assertIsNone(result.ai_error)
        task = result.task
        self.assertEqual(task.tags, ["work", "report"])
        # Medium (2) + due today (2) + AI 85 (3)
        self.assertEqual(task.ai_data.combined_score, 7)
        self.assertEqual(task.priority, PRIORITY_HIGH)
        self.assertEqual(task.ai_data.input_tokens, 500)
        self.assertEqual(task.ai_data.output_tokens, 100)
        expected_cost = calculate_cost(FLASH, 500, 100)
        self.assertAlmostEqual(task.ai_data.last_operation_cost, expected_cost, places=6)
        self.assertAlmostEqual(task.total_ai_cost, expected_cost, places=6)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_unsupported_model_degrades_without_calls(self, mock_openai_class: MagicMock) -> None:
        original = make_display_task(priority=PRIORITY_LOW)

        result = make_orchestrator(model_id="unknown/foo").process_task(original)

        mock_openai_class.assert_not_called()
        self.assertFalse(result.ai_processed)
        self.assertIn("not integrated", result.ai_error)
        self.assertEqual(result.task.priority, PRIORITY_LOW)
        self.assertEqual(result.task.ai_data.last_operation_cost, 0.0)
        self.assertEqual(result.task.total_ai_cost, 0.0)
        # Low (1) + due today (2) + unscored (1)
        self.assertEqual(result.task.ai_data.combined_score, 4)

    @override_settings(GOOGLE_API_KEY=None)
    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_missing_key_skips_ai(self, mock_openai_class: MagicMock) -> None:
        result = make_orchestrator(api_key=None).process_task(make_display_task())

        mock_openai_class.assert_not_called()
        self.assertFalse(result.api_key_available)
        self.assertFalse(result.ai_processed)
        self.assertTrue(result.ai_error.startswith(f"API Key not available for model {FLASH}"))
        self.assertEqual(result.task.priority, PRIORITY_MEDIUM)
        self.assertEqual(result.task.ai_data.suggested_action, "Review manually.")

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_prioritization_failure_keeps_tags_and_priority(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.side_effect = [
            create_mock_completion({"tags": ["work"]}),
            provider_error(RateLimitError, 429, "Resource has been exhausted"),
        ]

        result = make_orchestrator().process_task(make_display_task())

        self.assertFalse(result.ai_processed)
        self.assertIn("Prioritization Error: AI Prioritization failed: Quota exceeded", result.ai_error)
        self.assertEqual(result.task.tags, ["work"])
        self.assertEqual(result.task.priority, PRIORITY_MEDIUM)
        self.assertEqual(result.task.ai_data.ai_priority_score, 0)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_existing_tags_are_not_regenerated_on_create(self, mock_openai_class: MagicMock) -> None:
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.return_value = create_mock_completion(prioritization(50))

        result = make_orchestrator().process_task(make_display_task(tags=["mine"]), OPERATION_CREATE)

        self.assertEqual(mock_client.chat.completions.create.call_count, 1)
        self.assertEqual(result.task.tags, ["mine"])

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_title_change_regenerates_tags_on_update(self, mock_openai_class: MagicMock) -> None:
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.side_effect = [
            create_mock_completion({"tags": ["fresh"]}),
            create_mock_completion(prioritization(50)),
        ]

        result = make_orchestrator().process_task(
            make_display_task(title="New title", tags=["stale"]),
            OPERATION_UPDATE,
            original_title="Old title",
            original_description="Numbers for the board",
        )

        self.assertEqual(mock_client.chat.completions.create.call_count, 2)
        self.assertEqual(result.task.tags, ["fresh"])

    def test_api_key_resolution_order(self) -> None:
        with override_settings(GOOGLE_API_KEY="env-google", XAI_API_KEY=None):
            self.assertEqual(AIOrchestrator.resolve_api_key(FLASH, "mine"), ("mine", "settings"))
            self.assertEqual(AIOrchestrator.resolve_api_key(FLASH), ("env-google", "env_google"))
            self.assertEqual(AIOrchestrator.resolve_api_key("xai/grok-1"), (None, "none"))
            self.assertEqual(AIOrchestrator.resolve_api_key("unknown/foo"), (None, "none"))

    def test_preference_context_mentions_focus_details(self) -> None:
        prefs = PriorityPreferences(
            focus=FOCUS_DEADLINES, urgency_threshold_preset="1 day", custom_keywords=["invoice"]
        )

        context = make_orchestrator(preferences=prefs).build_preference_context(OPERATION_CREATE)

        self.assertIn("'Deadlines'", context)
        self.assertIn("'1 day'", context)
        self.assertIn("invoice", context)
        self.assertIn("This is a new task", context)


# ===========================================================================
# BULK RE-PRIORITIZATION TESTS
# ===========================================================================


class TestProcessScope(TestCase):
    """Bulk pass over a scope: order, callbacks, failures and cost."""

    @override_settings(GOOGLE_API_KEY=None)
    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_missing_key_short_circuits(self, mock_openai_class: MagicMock) -> None:
        done = make_display_task("Done", status=STATUS_COMPLETED)
        tasks = [make_display_task("A"), done, make_display_task("C")]
        seen = []

        result = make_orchestrator(api_key=None).process_scope(tasks, on_task_processed=lambda t: seen.append(t.title))

        mock_openai_class.assert_not_called()
        self.assertEqual(seen, ["A", "C"])
        self.assertEqual(result.total_tasks, 2)
        self.assertEqual(result.ai_processed_count, 0)
        self.assertEqual(result.batch_ai_cost, 0.0)
        self.assertTrue(result.error.startswith("API Key not available"))
        self.assertIs(result.tasks[1], done)
        self.assertIsNotNone(result.tasks[0].ai_data)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_failures_are_collected_and_still_cost(self, mock_openai_class: MagicMock) -> None:
        mock_openai_class.return_value.chat.completions.create.side_effect = [
            create_mock_completion(prioritization(90), prompt_tokens=100, completion_tokens=50),
            create_mock_completion("not json", prompt_tokens=100, completion_tokens=10),
        ]
        prior = AIPrioritizationResult(ai_priority_score=30, reasoning="Earlier pass", suggested_action="Later")
        tasks = [make_display_task("First"), make_display_task("Second", priority=PRIORITY_LOW, ai_data=prior)]
        seen = []

        result = make_orchestrator().process_scope(tasks, on_task_processed=lambda t: seen.append(t.title))

        self.assertEqual(seen, ["First", "Second"])
        self.assertEqual([t.title for t in result.tasks], ["First", "Second"])
        self.assertEqual(result.ai_processed_count, 1)
        self.assertEqual(result.total_tasks, 2)
        self.assertEqual(len(result.ai_error_messages), 1)
        self.assertTrue(result.ai_error_messages[0].startswith('Task "Second":'))
        self.assertIsNone(result.error)

        first, second = result.tasks
        self.assertEqual(first.priority, PRIORITY_HIGH)
        self.assertEqual(second.priority, PRIORITY_LOW)
        self.assertEqual(second.ai_data.ai_priority_score, 30)
        self.assertIn("Reprioritization attempt failed", second.ai_data.reasoning)

        expected = round(calculate_cost(FLASH, 100, 50) + calculate_cost(FLASH, 100, 10), 6)
        self.assertAlmostEqual(result.batch_ai_cost, expected, places=6)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_bulk_does_not_touch_tags(self, mock_openai_class: MagicMock) -> None:
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.return_value = create_mock_completion(prioritization(60))

        result = make_orchestrator().process_scope([make_display_task()])

        self.assertEqual(mock_client.chat.completions.create.call_count, 1)
        self.assertEqual(result.tasks[0].tags, [])

    def test_unsupported_model_skips_every_task(self) -> None:
        result = make_orchestrator(model_id="unknown/foo").process_scope(
            [make_display_task("A"), make_display_task("B")]
        )

        self.assertEqual(result.ai_processed_count, 0)
        self.assertEqual(len(result.ai_error_messages), 2)
        self.assertIn("Skipped AI re-prioritization for unsupported model", result.ai_error_messages[0])
        self.assertIsNone(result.error)


# ===========================================================================
# CACHE TESTS
# ===========================================================================


class TestAITagCache(TestCase):

    def setUp(self) -> None:
        cache.clear()

    def test_hit_reports_zero_tokens(self) -> None:
        tag_cache = AITagCache()
        live = MagicMock(return_value={"tags": ["rent"], "input_tokens": 40, "output_tokens": 6})

        first = tag_cache.get_or_set_tags(FLASH, "Pay rent", "October", live)
        second = tag_cache.get_or_set_tags(FLASH, "  pay RENT ", "october", live)

        live.assert_called_once()
        self.assertEqual(first["input_tokens"], 40)
        self.assertEqual(second, {"tags": ["rent"], "input_tokens": 0, "output_tokens": 0})

    def test_errors_are_not_cached(self) -> None:
        tag_cache = AITagCache()
        failing = MagicMock(return_value={"error_code": "TIMEOUT", "error_message": "slow"})

        tag_cache.get_or_set_tags(FLASH, "Pay rent", "", failing)
        tag_cache.get_or_set_tags(FLASH, "Pay rent", "", failing)

        self.assertEqual(failing.call_count, 2)

    def test_cache_is_keyed_by_model(self) -> None:
        tag_cache = AITagCache()
        live = MagicMock(return_value={"tags": ["rent"], "input_tokens": 1, "output_tokens": 1})

        tag_cache.get_or_set_tags(FLASH, "Pay rent", "", live)
        tag_cache.get_or_set_tags("xai/grok-1", "Pay rent", "", live)

        self.assertEqual(live.call_count, 2)

    @patch("tasks.ai_engine.external_scorer.OpenAI")
    def test_orchestrator_reuses_cached_tags(self, mock_openai_class: MagicMock) -> None:
        mock_client = mock_openai_class.return_value
        mock_client.chat.completions.create.side_effect = [
            create_mock_completion({"tags": ["work"]}, prompt_tokens=100, completion_tokens=20),
            create_mock_completion(prioritization(50), prompt_tokens=300, completion_tokens=60),
            create_mock_completion(prioritization(50), prompt_tokens=300, completion_tokens=60),
        ]
        orchestrator = make_orchestrator()

        orchestrator.process_task(make_display_task())
        again = orchestrator.process_task(make_display_task())

        self.assertEqual(mock_client.chat.completions.create.call_count, 3)
        self.assertEqual(again.task.tags, ["work"])
        self.assertEqual(again.task.ai_data.input_tokens, 300)
        self.assertEqual(again.task.ai_data.output_tokens, 60)


# ===========================================================================
# CELERY TASK TESTS
# ===========================================================================


@override_settings(GOOGLE_API_KEY=None, N8N_WEBHOOK_URL=None)
class TestScopeReprioritizationTask(TestCase):
    """Test the Celery task function directly."""

    def test_missing_user_exits_cleanly(self) -> None:
        self.assertIsNone(run_scope_reprioritization(999999, "All"))

    @patch("tasks.services.reprioritize_scope", side_effect=RuntimeError("db went away"))
    def test_failure_is_not_retried(self, mock_reprioritize: MagicMock) -> None:
        """A failed pass runs once; rerunning would bill finished tasks again."""
        user = create_test_user()

        result = run_scope_reprioritization.apply(args=(user.id, "All"))

        self.assertTrue(result.failed())
        self.assertIsInstance(result.result, RuntimeError)
        mock_reprioritize.assert_called_once()

    def test_worker_persists_heuristic_scores(self) -> None:
        user = create_test_user()
        task = Task.objects.create(user=user, title="Pay rent", description="October")
        Task.objects.create(user=user, title="Old", description="", status=STATUS_COMPLETED)

        summary = run_scope_reprioritization(user.id, "All")

        self.assertEqual(summary["total_tasks"], 1)
        self.assertEqual(summary["ai_processed_count"], 0)
        self.assertTrue(summary["error"].startswith("API Key not available"))
        task.refresh_from_db()
        self.assertTrue(task.has_ai_data)
        self.assertEqual(task.total_ai_cost, 0.0)
        self.assertEqual(user.app_settings.last_batch_ai_cost, 0.0)
