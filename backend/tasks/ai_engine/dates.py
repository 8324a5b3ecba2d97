# tasks/ai_engine/dates.py
"""Calendar-day helpers shared by scoring and timeframe grouping."""

import calendar
import datetime
from typing import Optional

from django.utils import timezone


def local_date(value, tz: Optional[datetime.tzinfo] = None) -> datetime.date:
    """Calendar day of ``value`` as seen in ``tz`` (default: current timezone)."""
    if isinstance(value, datetime.datetime):
        if timezone.is_aware(value):
            value = value.astimezone(tz or timezone.get_current_timezone())
        return value.date()
    return value


def local_today(tz: Optional[datetime.tzinfo] = None) -> datetime.date:
    return timezone.now().astimezone(tz or timezone.get_current_timezone()).date()


def week_bounds(day: datetime.date):
    """Monday and Sunday of the week containing ``day``."""
    start = day - datetime.timedelta(days=day.weekday())
    return start, start + datetime.timedelta(days=6)


def month_bounds(day: datetime.date):
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)
