"""Shared pytest fixtures for tonight's-events tests."""

import os
import time
from datetime import date
from pathlib import Path
from typing import Callable

import pytest
import structlog

from servers.tonight_events.models import (
    EventRecord,
    ExtractionMode,
    ReferenceDate,
    Selectors,
    SourceDescriptor,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def pacific_time():
    """Run with US Pacific as the local time zone."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "PST8PDT,M3.2.0,M11.1.0"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()


@pytest.fixture
def reference() -> ReferenceDate:
    """Friday, May 2 2025."""
    return ReferenceDate.from_date(date(2025, 5, 2))


@pytest.fixture
def fillmore() -> SourceDescriptor:
    """A venue calendar parsed with CSS selectors."""
    return SourceDescriptor(
        name="The Fillmore",
        region="San Francisco",
        url="https://www.thefillmore.com/shows",
        source_type="venue",
        selectors=Selectors(
            container="div.event-list-item",
            title="h3.event-title",
            date="span.event-date",
            time="span.event-time",
            link="a.event-link",
        ),
    )


@pytest.fixture
def eventbrite() -> SourceDescriptor:
    return SourceDescriptor(
        name="Eventbrite",
        region="San Francisco",
        url="https://www.eventbrite.com/d/ca--san-francisco/music--events--today/",
        source_type="aggregator",
        extraction_mode=ExtractionMode.JSON_EMBEDDED,
    )


@pytest.fixture
def bandsintown() -> SourceDescriptor:
    return SourceDescriptor(
        name="Bandsintown",
        region="San Francisco",
        url="https://www.bandsintown.com/c/san-francisco-ca?date=today",
        source_type="aggregator",
        extraction_mode=ExtractionMode.JSON_EMBEDDED,
    )


@pytest.fixture
def independent() -> SourceDescriptor:
    """A json-mode venue with no source-specific strategy."""
    return SourceDescriptor(
        name="The Independent",
        region="San Francisco",
        url="https://www.theindependentsf.com/calendar/",
        source_type="venue",
        extraction_mode=ExtractionMode.JSON_EMBEDDED,
        selectors=Selectors(
            container="div.tw-section",
            title="div.tw-name a",
            date="span.tw-event-date",
            link="div.tw-name a",
        ),
    )


@pytest.fixture
def fixtures_path() -> Path:
    """Provide path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def read_fixture(fixtures_path: Path) -> Callable[[str], str]:
    """Read a fixture file by name."""

    def read(name: str) -> str:
        return (fixtures_path / name).read_text(encoding="utf-8")

    return read


@pytest.fixture
def sample_records() -> list[EventRecord]:
    """Records from two regions, one without region or venue."""
    return [
        EventRecord(
            title="Band A",
            date="Fri May 2",
            time="8:00 PM",
            url="https://www.thefillmore.com/events/band-a",
            venue="The Fillmore",
            region="San Francisco",
            source_url="https://www.thefillmore.com/shows",
            is_today=True,
        ),
        EventRecord(
            title="Band B",
            date="Sat May 3",
            time="9:00 PM",
            venue="The Fillmore",
            region="San Francisco",
            is_today=False,
        ),
        EventRecord(
            title="Oakland Night",
            date="Tonight",
            venue="Fox Theater",
            region="East Bay",
            is_today=True,
        ),
        EventRecord(
            title="Mystery Show",
            date="Fri May 2 & Fri May 9",
            is_today=True,
        ),
    ]
