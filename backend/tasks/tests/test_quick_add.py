# tasks/tests/test_quick_add.py
"""
Quick-add parser tests.

``now`` is pinned in every test so relative dates resolve the same way on
any day the suite runs.
"""

from __future__ import annotations

import datetime
import zoneinfo

from django.test import SimpleTestCase

from tasks.quick_add import QUICK_TASK_TITLE, UNTITLED_TITLE, parse_quick_add

UTC = datetime.timezone.utc
# Monday morning
NOW = datetime.datetime(2026, 10, 5, 9, 30, tzinfo=UTC)


class TestQuickAddTokens(SimpleTestCase):

    def test_full_line(self) -> None:
        """Category, priority and date are all lifted out of the title."""
        result = parse_quick_add("Renew passport #Personal !High next friday", now=NOW)

        self.assertEqual(result.title, "Renew passport")
        self.assertEqual(result.category, "Personal")
        self.assertEqual(result.priority, "High")
        self.assertIsNotNone(result.due_date)
        self.assertEqual(result.due_date.weekday(), 4)
        self.assertGreater(result.due_date, NOW)
        self.assertLessEqual(result.due_date, NOW + datetime.timedelta(days=14))
        self.assertEqual(result.due_date.hour, 12)

    def test_category_spellings(self) -> None:
        for token in ("#homechores", "#home_chores", "#home-chores", "#HomeChores"):
            with self.subTest(token=token):
                result = parse_quick_add(f"Clean gutters {token}", now=NOW)
                self.assertEqual(result.category, "Home Chores")
                self.assertEqual(result.title, "Clean gutters")

    def test_unknown_category_stays_in_title(self) -> None:
        result = parse_quick_add("Buy milk #groceries", now=NOW)

        self.assertIsNone(result.category)
        self.assertEqual(result.title, "Buy milk #groceries")

    def test_priority_is_case_insensitive(self) -> None:
        result = parse_quick_add("File taxes !HIGH", now=NOW)

        self.assertEqual(result.priority, "High")
        self.assertEqual(result.title, "File taxes")

    def test_at_marker_is_removed_with_the_date(self) -> None:
        result = parse_quick_add("Call mom @tomorrow", now=NOW)

        self.assertEqual(result.title, "Call mom")
        self.assertEqual(result.due_date.date(), datetime.date(2026, 10, 6))
        self.assertEqual(result.due_date.hour, 12)

    def test_next_weekday_from_midweek(self) -> None:
        """From a Wednesday, "next friday" is the Friday of the following week, at noon."""
        wednesday = datetime.datetime(2026, 10, 14, 9, 0, tzinfo=UTC)

        result = parse_quick_add("Renew passport #Personal !High next friday", now=wednesday)

        self.assertEqual(result.title, "Renew passport")
        self.assertEqual(result.due_date, datetime.datetime(2026, 10, 23, 12, 0, tzinfo=UTC))

    def test_explicit_time_is_kept(self) -> None:
        wednesday = datetime.datetime(2026, 10, 14, 9, 0, tzinfo=UTC)

        result = parse_quick_add("Submit report at 5pm", now=wednesday)

        self.assertEqual(result.due_date.date(), datetime.date(2026, 10, 14))
        self.assertEqual(result.due_date.hour, 17)

    def test_no_tokens_leaves_optional_fields_empty(self) -> None:
        result = parse_quick_add("Water the plants", now=NOW)

        self.assertEqual(result.title, "Water the plants")
        self.assertIsNone(result.category)
        self.assertIsNone(result.priority)
        self.assertIsNone(result.due_date)
        self.assertIsNone(result.description)


class TestQuickAddTitles(SimpleTestCase):

    def test_tokens_only_gives_quick_task(self) -> None:
        result = parse_quick_add("!low #work", now=NOW)

        self.assertEqual(result.title, QUICK_TASK_TITLE)
        self.assertEqual(result.priority, "Low")
        self.assertEqual(result.category, "Work")

    def test_empty_text_is_untitled(self) -> None:
        self.assertEqual(parse_quick_add("   ", now=NOW).title, UNTITLED_TITLE)

    def test_whitespace_is_collapsed(self) -> None:
        result = parse_quick_add("Book   flights  !medium   for the trip", now=NOW)

        self.assertEqual(result.title, "Book flights for the trip")

    def test_long_text_splits_at_first_sentence(self) -> None:
        first = "Write the onboarding guide for new hires."
        rest = "It should cover accounts, laptops, payroll forms, building access and the team wiki pages."

        result = parse_quick_add(f"{first} {rest}", now=NOW)

        self.assertEqual(result.title, first)
        self.assertEqual(result.description, rest)

    def test_short_text_with_period_is_not_split(self) -> None:
        result = parse_quick_add("Email Dr. Lee", now=NOW)

        self.assertEqual(result.title, "Email Dr. Lee")
        self.assertIsNone(result.description)


class TestQuickAddTimezone(SimpleTestCase):

    def test_due_date_is_in_the_callers_zone(self) -> None:
        new_york = zoneinfo.ZoneInfo("America/New_York")
        # 01:00 UTC on the 6th is still the 5th in New York
        now = datetime.datetime(2026, 10, 6, 1, 0, tzinfo=UTC).astimezone(new_york)

        result = parse_quick_add("Pick up dry cleaning tomorrow", now=now)

        local_due = result.due_date.astimezone(new_york)
        self.assertEqual(local_due.date(), datetime.date(2026, 10, 6))
        self.assertEqual(local_due.hour, 12)
