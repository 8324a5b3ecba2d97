# tasks/quick_add.py
"""
One-line task entry: ``"Renew passport #Personal !High next friday"``.

Recognized tokens, each taken once and removed from the title:
    #category   one of the known categories, case-insensitive
    !priority   !low / !medium / !high
    a date      any natural-language date parsedatetime understands,
                optionally introduced by '@'
"""

import datetime
import re
from dataclasses import dataclass
from typing import Optional

import parsedatetime
from django.utils import timezone

from .ai_engine.contracts import CATEGORIES, PRIORITIES

CATEGORY_TOKEN_RE = re.compile(r"#([a-zA-Z0-9_\-]+)")
PRIORITY_TOKEN_RE = re.compile(r"!(low|medium|high)", re.IGNORECASE)

MAX_TITLE_LENGTH = 100
QUICK_TASK_TITLE = "Quick Task"
UNTITLED_TITLE = "Untitled Task"

_DEFAULT_HOUR = 12

_CATEGORY_LOOKUP = {re.sub(r"[^a-z0-9]", "", c.lower()): c for c in CATEGORIES}
_PRIORITY_LOOKUP = {p.lower(): p for p in PRIORITIES}


@dataclass
class QuickAddResult:
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime.datetime] = None


def _normalize_category(token: str) -> Optional[str]:
    # "homechores", "home_chores" and "home-chores" all mean Home Chores
    return _CATEGORY_LOOKUP.get(re.sub(r"[^a-z0-9]", "", token.lower()))


def _cut(text: str, start: int, end: int) -> str:
    return f"{text[:start]} {text[end:]}"


def _squash(text: str) -> str:
    return " ".join(text.split())


def _extract_category(text: str):
    for match in CATEGORY_TOKEN_RE.finditer(text):
        category = _normalize_category(match.group(1))
        if category:
            return category, _cut(text, match.start(), match.end())
    return None, text


def _extract_priority(text: str):
    match = PRIORITY_TOKEN_RE.search(text)
    if not match:
        return None, text
    return _PRIORITY_LOOKUP[match.group(1).lower()], _cut(text, match.start(), match.end())


def _extract_due_date(text: str, now: datetime.datetime):
    calendar = parsedatetime.Calendar(version=parsedatetime.VERSION_CONTEXT_STYLE)
    # Parse against the wall-clock time of ``now`` in its own zone
    source = now.replace(tzinfo=None)
    matches = calendar.nlp(text, sourceTime=source)
    if not matches:
        return None, text

    parsed, context, start, end, _matched = matches[0]
    # No clock time in the phrase: due at noon
    if context.hasDate and not context.hasTime:
        parsed = parsed.replace(hour=_DEFAULT_HOUR, minute=0, second=0, microsecond=0)
    tz = now.tzinfo if timezone.is_aware(now) else timezone.get_current_timezone()
    due_date = timezone.make_aware(parsed, tz) if timezone.is_naive(parsed) else parsed

    # "@tomorrow": drop the marker along with the date
    prefix = text[:start].rstrip()
    if prefix.endswith("@"):
        start = len(prefix) - 1
    return due_date, _cut(text, start, end)


def parse_quick_add(text: str, now: Optional[datetime.datetime] = None) -> QuickAddResult:
    now = now or timezone.now()
    remaining = text or ""

    category, remaining = _extract_category(remaining)
    priority, remaining = _extract_priority(remaining)
    due_date, remaining = _extract_due_date(remaining, now)

    title = _squash(remaining)
    description = None
    if len(title) > MAX_TITLE_LENGTH:
        sentence_end = title.find(".")
        if 0 < sentence_end < len(title) - 1:
            description = title[sentence_end + 1:].strip()
            title = title[:sentence_end + 1]

    if not title:
        title = QUICK_TASK_TITLE if (category or priority or due_date) else UNTITLED_TITLE

    return QuickAddResult(
        title=title,
        description=description,
        category=category,
        priority=priority,
        due_date=due_date,
    )
