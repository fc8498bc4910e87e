"""Tests for the today classifier and the strict second pass."""

from datetime import date, datetime

import pytest

from servers.tonight_events.date_classifier import (
    format_date,
    format_time,
    is_today,
    passes_strict_check,
    same_day,
)
from servers.tonight_events.models import ReferenceDate


class TestIsToday:
    """Lenient first pass, reference Friday May 2 2025."""

    @pytest.mark.parametrize(
        "text",
        [
            "Tonight",
            "TODAY 8pm",
            "Fri May 2",
            "Friday, May 2nd",
            "2 May",
            "5/2",
            "05.02",
            "5.2",
            "Fri 5/2 doors 7pm",
            "2025-05-02",
        ],
    )
    def test_matches_reference_day(self, text: str, reference: ReferenceDate):
        assert is_today(text, reference) is True

    @pytest.mark.parametrize(
        "text",
        [
            "",
            None,
            "Sat May 3",
            "5/20",
            "5/12",
            "Jan 2",
            "15/2",
            "Dec 2",
            "8:00 PM",
            "Sat 5/3 doors 7pm",
        ],
    )
    def test_rejects_other_days(self, text, reference: ReferenceDate):
        assert is_today(text, reference) is False

    def test_numeric_form_ignores_clock_times(self):
        # May 5 reference: "5.5 pm" reads as a time, not a date
        ref = ReferenceDate(day=5, month=5, year=2025, weekday=0)
        assert is_today("doors 5.5 pm", ref) is False

    def test_keywords_match_any_reference(self):
        ref = ReferenceDate(day=17, month=11, year=2031, weekday=0)
        assert is_today("today", ref) is True
        assert is_today("tonight", ref) is True

    def test_parsed_date_from_other_year_rejected(self, reference: ReferenceDate):
        assert is_today("2024-05-02", reference) is False


class TestPassesStrictCheck:
    """Exclusion pass applied to the today report."""

    @pytest.mark.parametrize(
        "text",
        ["Fri May 2", "Friday, May 2nd", "Tonight", "2 of May", "5/2 8pm", "7:30 May 2", ""],
    )
    def test_keeps_consistent_text(self, text: str, reference: ReferenceDate):
        assert passes_strict_check(text, reference) is True

    def test_rejects_other_weekday(self, reference: ReferenceDate):
        assert passes_strict_check("Sat May 2", reference) is False

    def test_lenient_match_with_wrong_weekday_rejected(self):
        # May 2 2026 is a Saturday
        saturday = ReferenceDate.from_date(date(2026, 5, 2))

        assert is_today("Friday, May 2", saturday) is True
        assert passes_strict_check("Friday, May 2", saturday) is False

    def test_rejects_abbreviated_other_weekday(self, reference: ReferenceDate):
        assert passes_strict_check("Thurs 5/2", reference) is False

    def test_rejects_other_day_in_month(self, reference: ReferenceDate):
        assert passes_strict_check("May 9", reference) is False
        assert passes_strict_check("5/9", reference) is False

    def test_rejects_multi_date_listing(self, reference: ReferenceDate):
        # Known limitation: a listing that also names another day is dropped
        assert passes_strict_check("Fri May 2 & Fri May 9", reference) is False

    def test_weekday_inside_word_ignored(self, reference: ReferenceDate):
        assert passes_strict_check("Monsoon Season, May 2", reference) is True


class TestFormatting:
    """Tests for timestamp helpers."""

    def test_format_date(self):
        assert format_date(datetime(2025, 5, 2, 20, 0)) == "Fri May 2"

    def test_format_time(self):
        assert format_time(datetime(2025, 5, 2, 20, 0)) == "8:00 PM"
        assert format_time(datetime(2025, 5, 2, 0, 5)) == "12:05 AM"
        assert format_time(datetime(2025, 5, 2, 12, 30)) == "12:30 PM"

    def test_same_day(self, reference: ReferenceDate):
        assert same_day(datetime(2025, 5, 2, 23, 59), reference) is True
        assert same_day(datetime(2024, 5, 2, 20, 0), reference) is False
