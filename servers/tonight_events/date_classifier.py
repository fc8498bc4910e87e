"""
Heuristic "is this today?" classification of free-text event dates.

Two passes:
- is_today(): lenient inclusion, used while extracting every record
- passes_strict_check(): exclusion pass applied only to the today report

Venue date strings are noisy ("Fri May 2", "TONIGHT", "5.2", "Sat 5/3 doors 7pm"),
so the first pass favours recall and the second trims obvious false positives.
"""

import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser

from .models import MONTH_ABBRS, WEEKDAY_ABBRS, ReferenceDate


TODAY_KEYWORDS = ("today", "tonight")

BARE_NUMERIC_DATE = re.compile(r"^\s*(\d{1,2})[./](\d{1,2})\s*$")

# Whole-word weekday mentions, including common 4-letter forms ("tues", "thur")
WEEKDAY_PATTERN = re.compile(
    r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|mon|tues|tue|wed|thurs|thur|thu|fri|sat|sun)\b"
)

# Two defaults that differ in every date field; a field that comes back
# different between the two parses was not present in the text.
_DEFAULT_A = (0, 1, 1)
_DEFAULT_B = (1, 2, 2)


def is_today(date_text: Optional[str], reference: ReferenceDate) -> bool:
    """Decide whether free-text date refers to the reference day."""
    if not date_text:
        return False

    text = date_text.lower()

    return (
        _mentions_today(text)
        or _matches_day_and_name(text, reference)
        or _matches_numeric_form(text, reference)
        or _matches_parsed_date(date_text, reference)
    )


def passes_strict_check(date_text: Optional[str], reference: ReferenceDate) -> bool:
    """Second pass: reject text that names another weekday or another day this month.

    Multi-date listings such as "May 2 & May 9" are rejected too; that is a
    known limitation of the heuristic.
    """
    if not date_text:
        return True

    text = date_text.lower()

    for match in WEEKDAY_PATTERN.finditer(text):
        if _weekday_index(match.group(1)) != reference.weekday:
            return False

    for day in _days_in_reference_month(text, reference):
        if day != reference.day:
            return False

    return True


def _mentions_today(text: str) -> bool:
    return any(keyword in text for keyword in TODAY_KEYWORDS)


def _matches_day_and_name(text: str, reference: ReferenceDate) -> bool:
    if str(reference.day) not in text:
        return False

    month_named = reference.month_name in text or reference.month_abbr in text
    weekday_named = reference.weekday_name in text or reference.weekday_abbr in text
    return month_named or weekday_named


def _matches_numeric_form(text: str, reference: ReferenceDate) -> bool:
    pattern = re.compile(
        rf"(?<![\d./])0?{reference.month}[./]0?{reference.day}(?!\d)(?!\s*[ap]m)"
    )
    return bool(pattern.search(text))


def _matches_parsed_date(date_text: str, reference: ReferenceDate) -> bool:
    bare = BARE_NUMERIC_DATE.match(date_text)
    if bare:
        try:
            parsed = date(reference.year, int(bare.group(1)), int(bare.group(2)))
        except ValueError:
            return False
        return parsed == reference.as_date()

    fields = _parse_date_fields(date_text, reference.year)
    if fields is None:
        return False

    year, month, day = fields
    return (
        day == reference.day
        and month == reference.month
        and (year is None or year == reference.year)
    )


def _parse_date_fields(
    text: str, year: int
) -> Optional[tuple[Optional[int], Optional[int], Optional[int]]]:
    """Fuzzy-parse text, returning (year, month, day) with unset fields as None."""
    results = []
    for year_offset, month, day in (_DEFAULT_A, _DEFAULT_B):
        default = datetime(year + year_offset, month, day)
        try:
            results.append(parser.parse(text, fuzzy=True, default=default))
        except (ValueError, OverflowError):
            return None

    first, second = results
    parsed_year = first.year if first.year == second.year else None
    parsed_month = first.month if first.month == second.month else None
    parsed_day = first.day if first.day == second.day else None

    if parsed_month is None or parsed_day is None:
        return None
    return parsed_year, parsed_month, parsed_day


def _weekday_index(token: str) -> int:
    return WEEKDAY_ABBRS.index(token[:3])


def _days_in_reference_month(text: str, reference: ReferenceDate) -> list[int]:
    """Day-of-month numbers written next to the reference month."""
    month_words = rf"(?:{reference.month_name}|{reference.month_abbr})\.?"
    patterns = [
        rf"\b{month_words}\s+(\d{{1,2}})(?:st|nd|rd|th)?\b",
        rf"(?<!:)\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?{month_words}(?![a-z])",
        rf"(?<![\d./])0?{reference.month}[./](\d{{1,2}})(?!\d)(?!\s*[ap]m)",
    ]

    days = []
    for pattern in patterns:
        for match in re.finditer(pattern, text):
            day = int(match.group(1))
            if 1 <= day <= 31:
                days.append(day)
    return days


def same_day(value: datetime, reference: ReferenceDate) -> bool:
    """Calendar-day equality between a timestamp and the reference."""
    return (
        value.day == reference.day
        and value.month == reference.month
        and value.year == reference.year
    )


def format_date(value: datetime) -> str:
    """Format as '<Dow> <Mon> <d>', e.g. 'Fri May 2'."""
    weekday = WEEKDAY_ABBRS[value.weekday()].title()
    month = MONTH_ABBRS[value.month - 1].title()
    return f"{weekday} {month} {value.day}"


def format_time(value: datetime) -> str:
    """Format as '<h>:<mm> <AM|PM>', e.g. '8:00 PM'."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"
