# src/share_reminder/extraction/dates.py

"""Date/time recognition for shared messages (English, caller's local time).

Supports:
- Absolute: '2026-03-14', '3/14', '3/14/26', 'march 14', 'mar 14, 2027', '14 march'
- Relative: 'today', 'tonight', 'tomorrow', 'day after tomorrow', 'next week',
  weekday names ('friday', 'this friday', 'next friday')
- Clock: '5pm', '5:30 pm', '17:00', 'at 5', 'noon', 'midnight'
- Parts of day (only when no clock time is given): morning, afternoon, evening, tonight
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

logger = logging.getLogger(__name__)

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_WEEKDAYS = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}

_PARTS_OF_DAY = {
    "morning": time(9, 0),
    "afternoon": time(15, 0),
    "evening": time(18, 0),
    "tonight": time(20, 0),
}

_MONTH = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
MONTH_DAY_RE = re.compile(
    rf"\b{_MONTH}\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}})\b)?", re.IGNORECASE
)
DAY_MONTH_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTH}\b(?:,?\s+(\d{{4}})\b)?", re.IGNORECASE
)
SLASH_DATE_RE = re.compile(r"(?<![\d/])(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?(?![\d/])")

RELATIVE_DAY_RE = re.compile(
    r"\b(day after tomorrow|today|tonight|tomorrow|tmrw|next week)\b", re.IGNORECASE
)
WEEKDAY_RE = re.compile(
    r"\b(?:(this|next|coming)\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)

CLOCK_AMPM_RE = re.compile(
    r"(?<![\d:/])(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s?m\.?(?![a-z])", re.IGNORECASE
)
CLOCK_24H_RE = re.compile(r"(?<![\d:/-])([01]?\d|2[0-3]):([0-5]\d)(?![\d:])")
AT_HOUR_RE = re.compile(r"\bat\s+(\d{1,2})\b(?![:/.\d])(?!\s*[ap]\.?\s?m)", re.IGNORECASE)
NOON_RE = re.compile(r"\b(noon|midday|midnight)\b", re.IGNORECASE)
PART_OF_DAY_RE = re.compile(r"\b(morning|afternoon|evening|tonight)\b", re.IGNORECASE)

# Connectors that belong to a date/time phrase ("at 5pm", "on friday", "in the morning").
_LEAD_IN = r"(?:\b(?:at|on|by|before|until|till|due|from|in the|this)\s+)?"

_SCRUB_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(_LEAD_IN + p.pattern, re.IGNORECASE)
    for p in (
        ISO_DATE_RE,
        MONTH_DAY_RE,
        DAY_MONTH_RE,
        SLASH_DATE_RE,
        CLOCK_AMPM_RE,
        CLOCK_24H_RE,
        AT_HOUR_RE,
        RELATIVE_DAY_RE,
        WEEKDAY_RE,
        NOON_RE,
        PART_OF_DAY_RE,
    )
)


def _month_number(token: str) -> int:
    return _MONTHS[token.lower()[:3]]


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _roll_forward(d: date | None, today: date, *, explicit_year: bool) -> date | None:
    """A year-less date that has already passed this year means next year."""
    if d is None or explicit_year or d >= today:
        return d
    return _safe_date(d.year + 1, d.month, d.day)


def _parse_absolute_date(text: str, today: date) -> date | None:
    m = ISO_DATE_RE.search(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = MONTH_DAY_RE.search(text)
    if m:
        year = int(m.group(3)) if m.group(3) else today.year
        d = _safe_date(year, _month_number(m.group(1)), int(m.group(2)))
        return _roll_forward(d, today, explicit_year=bool(m.group(3)))

    m = DAY_MONTH_RE.search(text)
    if m:
        year = int(m.group(3)) if m.group(3) else today.year
        d = _safe_date(year, _month_number(m.group(2)), int(m.group(1)))
        return _roll_forward(d, today, explicit_year=bool(m.group(3)))

    m = SLASH_DATE_RE.search(text)
    if m:
        # US order: month/day[/year]
        raw_year = m.group(3)
        year = int(raw_year) if raw_year else today.year
        if raw_year and year < 100:
            year += 2000
        d = _safe_date(year, int(m.group(1)), int(m.group(2)))
        return _roll_forward(d, today, explicit_year=bool(raw_year))

    return None


def next_weekday(today: date, weekday_name: str, *, following_week: bool = False) -> date:
    """
    Resolve a weekday name to a calendar date.

    - plain / "this" / "coming": next occurrence strictly after today
    - "next": the occurrence in the following week (7 + offset days from today)
    """
    wd = _WEEKDAYS[weekday_name.lower()]
    if following_week:
        return today + timedelta(days=7 + (wd.weekday - today.weekday()))
    return today + relativedelta(days=+1, weekday=wd(+1))


def _parse_relative_date(text: str, today: date) -> date | None:
    m = RELATIVE_DAY_RE.search(text)
    if m:
        word = m.group(1).lower()
        if word in ("today", "tonight"):
            return today
        if word in ("tomorrow", "tmrw"):
            return today + timedelta(days=1)
        if word == "day after tomorrow":
            return today + timedelta(days=2)
        if word == "next week":
            return today + timedelta(days=7)

    m = WEEKDAY_RE.search(text)
    if m:
        qualifier = (m.group(1) or "").lower()
        return next_weekday(today, m.group(2), following_week=qualifier == "next")

    return None


def _safe_time(hour: int, minute: int) -> time | None:
    try:
        return time(hour, minute)
    except ValueError:
        return None


def _parse_clock_time(text: str) -> time | None:
    m = CLOCK_AMPM_RE.search(text)
    if m:
        hour = int(m.group(1))
        minute = int(m.group(2) or 0)
        if not 1 <= hour <= 12:
            return None
        period = m.group(3).lower()
        if period == "p" and hour != 12:
            hour += 12
        elif period == "a" and hour == 12:
            hour = 0
        return _safe_time(hour, minute)

    m = CLOCK_24H_RE.search(text)
    if m:
        return _safe_time(int(m.group(1)), int(m.group(2)))

    m = AT_HOUR_RE.search(text)
    if m:
        hour = int(m.group(1))
        # "at 5" in a chat almost always means the afternoon.
        if 1 <= hour <= 7:
            hour += 12
        return _safe_time(hour, 0)

    m = NOON_RE.search(text)
    if m:
        return time(0, 0) if m.group(1).lower() == "midnight" else time(12, 0)

    return None


def parse_date_time(text: str, *, now: datetime) -> tuple[date | None, time | None]:
    """
    Scan text for a calendar date and a clock time.

    Either part may be None; nothing here raises on odd input.
    """
    if not text:
        return None, None

    today = now.date()
    found_date = _parse_absolute_date(text, today) or _parse_relative_date(text, today)

    found_time = _parse_clock_time(text)
    if found_time is None:
        m = PART_OF_DAY_RE.search(text)
        if m:
            found_time = _PARTS_OF_DAY[m.group(1).lower()]

    logger.debug("parse_date_time date=%s time=%s", found_date, found_time)
    return found_date, found_time


def strip_date_time(text: str) -> str:
    """Remove recognised date/time phrases (and their lead-in words) from text."""
    out = text or ""
    for pattern in _SCRUB_PATTERNS:
        out = pattern.sub(" ", out)
    return re.sub(r"\s+", " ", out).strip()
