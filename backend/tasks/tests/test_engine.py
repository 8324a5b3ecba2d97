# tasks/tests/test_engine.py
"""
AI Engine Unit Tests
====================

Test suite for the deterministic parts of the prioritization engine.

This module tests:
1. Cost calculation (context tiers, output modes, unknown models)
2. Timeframe classification, scopes and the grouped view
3. Combined score, priority mapping and list order
4. The "important" predicate used by the this-week filter

Test Philosophy:
----------------
- Test the arithmetic, not just the shapes
- Pin "today" so calendar rules are deterministic
- Tests are deterministic and do not require external services
"""

from __future__ import annotations

import datetime
import zoneinfo

from django.test import TestCase

from tasks.ai_engine.catalog import (
    DEFAULT_AI_MODEL_ID,
    Provider,
    provider_model_name,
    resolve_provider,
)
from tasks.ai_engine.contracts import (
    FOCUS_BALANCED,
    FOCUS_CATEGORIES,
    FOCUS_DEADLINES,
    FOCUS_IMPORTANCE,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    STATUS_PENDING,
    AIPrioritizationResult,
    DisplayTask,
    PriorityPreferences,
)
from tasks.ai_engine.cost import calculate_cost
from tasks.ai_engine.scoring import (
    compute_combined_score,
    is_task_important,
    map_score_to_priority,
    sort_tasks,
)
from tasks.ai_engine.timeframe import (
    BUCKET_COMPLETED,
    BUCKET_NEXT_TWO_WEEKS,
    BUCKET_PAST_UNCOMPLETED,
    BUCKET_THIS_MONTH,
    BUCKET_THIS_WEEK,
    BUCKET_TODAY,
    BUCKETS,
    SCOPE_ALL,
    SCOPE_NEXT_TWO_WEEKS,
    SCOPE_THIS_MONTH,
    SCOPE_TODAY,
    THIS_WEEK_FILTER_IMPORTANT,
    TIMEFRAME_ALL,
    TIMEFRAME_THIS_WEEK,
    TIMEFRAME_TODAY,
    classify_timeframe,
    compute_stats,
    group_tasks,
    tasks_for_scope,
)

UTC = datetime.timezone.utc

# Monday. Week: Oct 5-11, next two weeks: Oct 12-25, rest of month: Oct 26-31.
TODAY = datetime.date(2026, 10, 5)


# ===========================================================================
# HELPER FIXTURES
# ===========================================================================


def at_noon(day: datetime.date) -> datetime.datetime:
    return datetime.datetime(day.year, day.month, day.day, 12, tzinfo=UTC)


def days_from_today(days: int) -> datetime.datetime:
    return at_noon(TODAY + datetime.timedelta(days=days))


def make_task(
    title: str = "Task",
    due_in_days: int = 0,
    priority: str = PRIORITY_MEDIUM,
    status: str = STATUS_PENDING,
    ai_score: int | None = None,
    combined: int | None = None,
    completed_at: datetime.datetime | None = None,
    total_ai_cost: float = 0.0,
) -> DisplayTask:
    """Build a DisplayTask due ``due_in_days`` from TODAY."""
    ai_data = None
    if ai_score is not None or combined is not None:
        ai_data = AIPrioritizationResult(
            ai_priority_score=ai_score or 0,
            reasoning="",
            suggested_action="",
            combined_score=combined or 0,
        )
    return DisplayTask(
        id=title,
        title=title,
        description="",
        due_date=days_from_today(due_in_days),
        priority=priority,
        status=status,
        completed_at=completed_at,
        ai_data=ai_data,
        total_ai_cost=total_ai_cost,
    )


# ===========================================================================
# CATALOG TESTS
# ===========================================================================


class TestModelCatalog(TestCase):
    """Provider resolution for catalog and non-catalog model ids."""

    def test_default_model_is_gemini_flash(self) -> None:
        self.assertEqual(DEFAULT_AI_MODEL_ID, "googleai/gemini-1.5-flash-latest")

    def test_catalog_models_resolve_to_their_provider(self) -> None:
        self.assertEqual(resolve_provider("googleai/gemini-2.5-flash"), Provider.GOOGLE)
        self.assertEqual(resolve_provider("xai/grok-1"), Provider.XAI)

    def test_prefix_resolves_models_outside_catalog(self) -> None:
        self.assertEqual(resolve_provider("googleai/gemini-9-ultra"), Provider.GOOGLE)

    def test_unknown_prefix_is_other(self) -> None:
        self.assertEqual(resolve_provider("unknown/foo"), Provider.OTHER)
        self.assertEqual(resolve_provider(""), Provider.OTHER)

    def test_provider_model_name_strips_prefix(self) -> None:
        self.assertEqual(provider_model_name("googleai/gemini-1.5-pro-latest"), "gemini-1.5-pro-latest")
        self.assertEqual(provider_model_name("xai/grok-1"), "grok-1")


# ===========================================================================
# COST CALCULATOR TESTS
# ===========================================================================


class TestCalculateCost(TestCase):
    """
    Test suite for calculate_cost.

    Tests cover:
    - Context-tiered pricing below and above 128K tokens
    - Thinking-mode output pricing
    - Linearity for flat-rate models
    - Unknown models (0, warning logged)
    """

    def test_flash_below_context_threshold(self) -> None:
        cost = calculate_cost("googleai/gemini-1.5-flash-latest", 1000, 500)
        # 1000 * 0.35/1M + 500 * 0.70/1M
        self.assertAlmostEqual(cost, 0.0007, places=6)

    def test_flash_above_context_threshold_uses_high_tier(self) -> None:
        cost = calculate_cost("googleai/gemini-1.5-flash-latest", 200_000, 0)
        self.assertAlmostEqual(cost, 0.14, places=6)

    def test_exactly_128k_tokens_is_low_tier(self) -> None:
        cost = calculate_cost("googleai/gemini-1.5-pro-latest", 128_000, 0)
        self.assertAlmostEqual(cost, 128_000 * 3.50 / 1_000_000, places=6)

    def test_thinking_model_bills_output_at_thinking_rate(self) -> None:
        cost = calculate_cost("googleai/gemini-2.5-flash", 1000, 1000)
        self.assertAlmostEqual(cost, 0.00015 + 0.0035, places=6)

    def test_flat_rate_model_is_linear(self) -> None:
        single = calculate_cost("xai/grok-1", 1000, 500)
        double = calculate_cost("xai/grok-1", 2000, 1000)
        self.assertAlmostEqual(single, 0.0015, places=6)
        self.assertAlmostEqual(double, 2 * single, places=6)

    def test_zero_tokens_cost_nothing(self) -> None:
        self.assertEqual(calculate_cost("xai/grok-1", 0, 0), 0.0)

    def test_unknown_model_returns_zero_and_warns(self) -> None:
        with self.assertLogs("tasks.ai_engine.cost", level="WARNING") as logs:
            cost = calculate_cost("unknown/foo", 5000, 5000)
        self.assertEqual(cost, 0.0)
        self.assertIn("unknown/foo", logs.output[0])

    def test_result_is_rounded_to_six_places(self) -> None:
        cost = calculate_cost("xai/grok-1", 1, 0)
        self.assertEqual(cost, round(cost, 6))
        self.assertEqual(cost, 0.000001)


# ===========================================================================
# TIMEFRAME CLASSIFIER TESTS
# ===========================================================================


class TestClassifyTimeframe(TestCase):
    """Bucket rules are evaluated in order; the first match wins."""

    def classify(self, days: int, status: str = STATUS_PENDING):
        return classify_timeframe(days_from_today(days), status, today=TODAY, tz=UTC)

    def test_completed_always_completed(self) -> None:
        for days in (-10, 0, 3, 60):
            self.assertEqual(self.classify(days, STATUS_COMPLETED), BUCKET_COMPLETED)

    def test_overdue_is_past_uncompleted(self) -> None:
        self.assertEqual(self.classify(-1), BUCKET_PAST_UNCOMPLETED)

    def test_due_today(self) -> None:
        self.assertEqual(self.classify(0), BUCKET_TODAY)

    def test_rest_of_week(self) -> None:
        self.assertEqual(self.classify(1), BUCKET_THIS_WEEK)
        self.assertEqual(self.classify(6), BUCKET_THIS_WEEK)  # Sunday

    def test_next_two_weeks_window(self) -> None:
        self.assertEqual(self.classify(7), BUCKET_NEXT_TWO_WEEKS)   # next Monday
        self.assertEqual(self.classify(20), BUCKET_NEXT_TWO_WEEKS)  # Sunday after

    def test_rest_of_month(self) -> None:
        self.assertEqual(self.classify(21), BUCKET_THIS_MONTH)  # Oct 26
        self.assertEqual(self.classify(26), BUCKET_THIS_MONTH)  # Oct 31

    def test_beyond_month_and_window_is_unbucketed(self) -> None:
        self.assertIsNone(self.classify(40))

    def test_every_result_is_a_known_bucket(self) -> None:
        for days in range(-5, 60):
            result = self.classify(days)
            self.assertTrue(result is None or result in BUCKETS)

    def test_calendar_day_uses_local_timezone(self) -> None:
        """02:00 UTC on the 6th is still the 5th in New York."""
        new_york = zoneinfo.ZoneInfo("America/New_York")
        due = datetime.datetime(2026, 10, 6, 2, tzinfo=UTC)
        self.assertEqual(classify_timeframe(due, STATUS_PENDING, today=TODAY, tz=new_york), BUCKET_TODAY)
        self.assertEqual(classify_timeframe(due, STATUS_PENDING, today=TODAY, tz=UTC), BUCKET_THIS_WEEK)


class TestTasksForScope(TestCase):

    def setUp(self) -> None:
        self.tasks = [
            make_task("overdue", -2),
            make_task("today", 0),
            make_task("in13", 13),
            make_task("in14", 14),
            make_task("oct31", 26),
            make_task("november", 30),
            make_task("done", 0, status=STATUS_COMPLETED, completed_at=days_from_today(0)),
        ]

    def titles(self, scope):
        return [t.title for t in tasks_for_scope(self.tasks, scope, today=TODAY, tz=UTC)]

    def test_all_is_every_pending_task(self) -> None:
        self.assertEqual(self.titles(SCOPE_ALL), ["overdue", "today", "in13", "in14", "oct31", "november"])

    def test_today(self) -> None:
        self.assertEqual(self.titles(SCOPE_TODAY), ["today"])

    def test_next_two_weeks_is_today_plus_thirteen(self) -> None:
        self.assertEqual(self.titles(SCOPE_NEXT_TWO_WEEKS), ["today", "in13"])

    def test_this_month_includes_overdue_in_month(self) -> None:
        self.assertEqual(self.titles(SCOPE_THIS_MONTH), ["overdue", "today", "in13", "in14", "oct31"])


class TestGroupTasks(TestCase):
    """Tests for the grouped timeframe view."""

    def test_overview_lifts_top_ten_out_of_buckets(self) -> None:
        tasks = [make_task(f"t{i}", i % 5, combined=i) for i in range(12)]

        grouped = group_tasks(tasks, TIMEFRAME_ALL, today=TODAY, tz=UTC)

        top_titles = [t.title for t in grouped["top_tasks"]]
        self.assertEqual(len(top_titles), 10)
        self.assertEqual(top_titles[0], "t11")
        remaining = [t.title for bucket in grouped["groups"].values() for t in bucket]
        self.assertCountEqual(remaining, ["t0", "t1"])

    def test_single_timeframe_keeps_only_its_bucket(self) -> None:
        tasks = [make_task("today", 0), make_task("week", 2), make_task("late", -1)]

        grouped = group_tasks(tasks, TIMEFRAME_TODAY, today=TODAY, tz=UTC)

        self.assertEqual(grouped["top_tasks"], [])
        self.assertEqual([t.title for t in grouped["groups"][BUCKET_TODAY]], ["today"])
        self.assertEqual(grouped["groups"][BUCKET_THIS_WEEK], [])
        self.assertEqual(grouped["groups"][BUCKET_PAST_UNCOMPLETED], [])

    def test_important_filter_applies_to_this_week_view(self) -> None:
        tasks = [
            make_task("high", 2, priority=PRIORITY_HIGH),
            make_task("medium_plain", 3),
            make_task("medium_ai", 4, ai_score=90, combined=6),
        ]

        grouped = group_tasks(
            tasks,
            TIMEFRAME_THIS_WEEK,
            PriorityPreferences(focus=FOCUS_BALANCED),
            this_week_filter=THIS_WEEK_FILTER_IMPORTANT,
            today=TODAY,
            tz=UTC,
        )

        self.assertEqual(
            [t.title for t in grouped["groups"][BUCKET_THIS_WEEK]], ["medium_ai", "high"]
        )

    def test_completed_hidden_unless_requested(self) -> None:
        done = make_task("done", -1, status=STATUS_COMPLETED, completed_at=days_from_today(-1))

        hidden = group_tasks([done], TIMEFRAME_ALL, today=TODAY, tz=UTC)
        shown = group_tasks([done], TIMEFRAME_ALL, show_completed=True, today=TODAY, tz=UTC)

        self.assertEqual(hidden["groups"][BUCKET_COMPLETED], [])
        self.assertEqual([t.title for t in shown["groups"][BUCKET_COMPLETED]], ["done"])


class TestComputeStats(TestCase):

    def test_counters_and_cost(self) -> None:
        tasks = [
            make_task("done", 0, status=STATUS_COMPLETED, completed_at=days_from_today(0), total_ai_cost=0.001),
            make_task("today", 0, total_ai_cost=0.0005),
            make_task("later_this_month", 10),
            make_task("next_month", 40),
        ]

        stats = compute_stats(tasks, today=TODAY, tz=UTC)

        self.assertEqual(stats["done"], 1)
        self.assertEqual(stats["upcoming"], 1)
        self.assertEqual(stats["waiting"], 2)
        self.assertAlmostEqual(stats["total_ai_cost"], 0.0015, places=6)


# ===========================================================================
# PRIORITY SCORING TESTS
# ===========================================================================


class TestComputeCombinedScore(TestCase):
    """
    Test suite for compute_combined_score.

    priority (1-3) + due date (0-3) + AI (1-3)
    """

    def score(self, priority, days, ai_score, preferences=None):
        return compute_combined_score(priority, days_from_today(days), ai_score, preferences, today=TODAY, tz=UTC)

    def test_high_priority_due_today_with_strong_ai(self) -> None:
        self.assertEqual(self.score(PRIORITY_HIGH, 0, 90), 3 + 2 + 3)

    def test_overdue_always_gets_maximum_due_points(self) -> None:
        self.assertEqual(self.score(PRIORITY_LOW, -1, None), 1 + 3 + 1)

    def test_far_future_gets_no_due_points(self) -> None:
        self.assertEqual(self.score(PRIORITY_LOW, 30, 10), 1 + 0 + 1)

    def test_second_week_gets_one_point(self) -> None:
        self.assertEqual(self.score(PRIORITY_MEDIUM, 10, 50), 2 + 1 + 2)

    def test_deadlines_focus_uses_urgency_preset(self) -> None:
        prefs = PriorityPreferences(focus=FOCUS_DEADLINES, urgency_threshold_preset="1 day")
        self.assertEqual(self.score(PRIORITY_MEDIUM, 1, 50, prefs), 2 + 3 + 2)
        self.assertEqual(self.score(PRIORITY_MEDIUM, 3, 50, prefs), 2 + 2 + 2)

    def test_preset_ignored_without_deadlines_focus(self) -> None:
        prefs = PriorityPreferences(focus=FOCUS_BALANCED, urgency_threshold_preset="1 day")
        self.assertEqual(self.score(PRIORITY_MEDIUM, 3, 50, prefs), 2 + 2 + 2)

    def test_unscored_and_zero_score_are_neutral(self) -> None:
        self.assertEqual(self.score(PRIORITY_MEDIUM, 0, None), self.score(PRIORITY_MEDIUM, 0, 0))

    def test_score_stays_in_range(self) -> None:
        for priority in (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH):
            for days in (-3, 0, 5, 12, 40):
                for ai_score in (None, 0, 39, 40, 69, 70, 100):
                    self.assertTrue(0 <= self.score(priority, days, ai_score) <= 11)


class TestMapScoreToPriority(TestCase):

    def test_thresholds(self) -> None:
        self.assertEqual(map_score_to_priority(7), PRIORITY_HIGH)
        self.assertEqual(map_score_to_priority(6), PRIORITY_MEDIUM)
        self.assertEqual(map_score_to_priority(4), PRIORITY_MEDIUM)
        self.assertEqual(map_score_to_priority(3), PRIORITY_LOW)

    def test_mapping_is_monotonic(self) -> None:
        rank = {PRIORITY_LOW: 0, PRIORITY_MEDIUM: 1, PRIORITY_HIGH: 2}
        levels = [rank[map_score_to_priority(score)] for score in range(0, 12)]
        self.assertEqual(levels, sorted(levels))


class TestSortTasks(TestCase):

    def test_pending_by_score_then_due_completed_by_recency(self) -> None:
        a = make_task("A", 1, combined=9)
        b = make_task("B", 0, combined=9)
        c = make_task("C", -1, status=STATUS_COMPLETED, completed_at=days_from_today(-1))
        d = make_task("D", 0, status=STATUS_COMPLETED, completed_at=days_from_today(0))

        ordered = sort_tasks([c, a, d, b])

        self.assertEqual([t.title for t in ordered], ["B", "A", "D", "C"])

    def test_unscored_pending_tasks_sort_after_scored(self) -> None:
        scored = make_task("scored", 5, combined=2)
        unscored = make_task("unscored", 0)

        self.assertEqual([t.title for t in sort_tasks([unscored, scored])], ["scored", "unscored"])


class TestIsTaskImportant(TestCase):

    def test_balanced_medium_with_ai_90_is_important(self) -> None:
        task = make_task(priority=PRIORITY_MEDIUM, ai_score=90)
        self.assertTrue(is_task_important(task, PriorityPreferences(focus=FOCUS_BALANCED)))

    def test_balanced_medium_with_ai_80_is_not(self) -> None:
        task = make_task(priority=PRIORITY_MEDIUM, ai_score=80)
        self.assertFalse(is_task_important(task, PriorityPreferences(focus=FOCUS_BALANCED)))

    def test_importance_focus_uses_lower_threshold(self) -> None:
        task = make_task(priority=PRIORITY_LOW, ai_score=75)
        self.assertTrue(is_task_important(task, PriorityPreferences(focus=FOCUS_IMPORTANCE)))

    def test_high_priority_is_always_important(self) -> None:
        task = make_task(priority=PRIORITY_HIGH)
        for focus in (FOCUS_BALANCED, FOCUS_DEADLINES, FOCUS_IMPORTANCE, FOCUS_CATEGORIES):
            self.assertTrue(is_task_important(task, PriorityPreferences(focus=focus)))

    def test_categories_focus_ignores_ai_score(self) -> None:
        task = make_task(priority=PRIORITY_MEDIUM, ai_score=99)
        self.assertFalse(is_task_important(task, PriorityPreferences(focus=FOCUS_CATEGORIES)))
