"""Tests for selector-driven HTML extraction."""

from typing import Callable

from bs4 import BeautifulSoup

from servers.tonight_events.models import ReferenceDate, Selectors, SourceDescriptor
from servers.tonight_events.sources.html_extractor import (
    MAX_CONTAINERS,
    extract_from_html,
    resolve_url,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestExtractFromHtml:
    """Tests for extract_from_html."""

    def test_extracts_venue_calendar(
        self,
        read_fixture: Callable[[str], str],
        fillmore: SourceDescriptor,
        reference: ReferenceDate,
    ):
        records = extract_from_html(
            _soup(read_fixture("venue_calendar.html")), fillmore, fillmore.url, reference
        )

        assert [r.title for r in records] == ["Band A", "Band B", "Tonight Only: Band C"]

        band_a = records[0]
        assert band_a.date == "Fri May 2"
        assert band_a.time == "8:00 PM"
        assert band_a.url == "https://www.thefillmore.com/events/band-a"
        assert band_a.venue == "The Fillmore"
        assert band_a.region == "San Francisco"
        assert band_a.source_url == fillmore.url
        assert band_a.is_today is True

        assert records[1].url == "https://tickets.example.com/band-b"
        assert records[1].is_today is False
        assert records[2].url == ""
        assert records[2].is_today is True

    def test_reports_skipped_container(
        self,
        read_fixture: Callable[[str], str],
        fillmore: SourceDescriptor,
        reference: ReferenceDate,
    ):
        decisions = []

        extract_from_html(
            _soup(read_fixture("venue_calendar.html")),
            fillmore,
            fillmore.url,
            reference,
            on_decision=lambda event, **fields: decisions.append((event, fields)),
        )

        assert decisions == [
            (
                "record_skipped",
                {
                    "source": "The Fillmore",
                    "index": 2,
                    "reason": "missing_or_oversized_title",
                },
            )
        ]

    def test_no_container_selector(self, reference: ReferenceDate):
        descriptor = SourceDescriptor(name="Bare", url="https://example.com")
        decisions = []

        records = extract_from_html(
            _soup("<div class='event'>Show</div>"),
            descriptor,
            descriptor.url,
            reference,
            on_decision=lambda event, **fields: decisions.append(event),
        )

        assert records == []
        assert decisions == ["no_container_selector"]

    def test_caps_containers(self, fillmore: SourceDescriptor, reference: ReferenceDate):
        items = "".join(
            f'<div class="event-list-item"><h3 class="event-title">Show {i}</h3></div>'
            for i in range(MAX_CONTAINERS + 10)
        )

        records = extract_from_html(_soup(items), fillmore, fillmore.url, reference)

        assert len(records) == MAX_CONTAINERS
        assert records[-1].title == f"Show {MAX_CONTAINERS - 1}"

    def test_skips_oversized_title(self, fillmore: SourceDescriptor, reference: ReferenceDate):
        html = (
            f'<div class="event-list-item"><h3 class="event-title">{"x" * 101}</h3></div>'
            '<div class="event-list-item"><h3 class="event-title">Short</h3></div>'
        )

        records = extract_from_html(_soup(html), fillmore, fillmore.url, reference)

        assert [r.title for r in records] == ["Short"]

    def test_title_falls_back_to_nested_anchor(self, reference: ReferenceDate):
        descriptor = SourceDescriptor(
            name="GAMH",
            url="https://gamh.com/calendar/",
            selectors=Selectors(container="article", title="h2"),
        )
        html = '<article><h2><a href="/e/1"> </a></h2><h2><a href="/e/2">Real Title</a></h2></article>'

        records = extract_from_html(_soup(html), descriptor, descriptor.url, reference)

        assert [r.title for r in records] == ["Real Title"]

    def test_songkick_time_selector_holds_venue(self, reference: ReferenceDate):
        descriptor = SourceDescriptor(
            name="Songkick",
            region="San Francisco",
            url="https://www.songkick.com/metro-areas/26330",
            selectors=Selectors(
                container="li.event",
                title="p.artists strong",
                date="time",
                time="p.location",
            ),
        )
        html = (
            '<li class="event"><p class="artists"><strong>Touring Act</strong></p>'
            "<time>Friday 02 May 2025</time>"
            '<p class="location">The Warfield  San Francisco</p></li>'
        )

        records = extract_from_html(_soup(html), descriptor, descriptor.url, reference)

        assert len(records) == 1
        assert records[0].venue == "The Warfield San Francisco"
        assert records[0].time == ""
        assert records[0].is_today is True

    def test_extraction_is_repeatable(
        self, fillmore: SourceDescriptor, reference: ReferenceDate
    ):
        html = (
            '<div class="event-list-item"><h3 class="event-title">One</h3></div>'
            '<div class="event-list-item"><h3 class="event-title">Two</h3></div>'
        )

        records_first = extract_from_html(_soup(html), fillmore, fillmore.url, reference)
        records_second = extract_from_html(_soup(html), fillmore, fillmore.url, reference)

        assert records_first == records_second
        assert [r.title for r in records_first] == ["One", "Two"]


class TestResolveUrl:
    """Tests for link resolution."""

    def test_relative_path(self):
        assert (
            resolve_url("/events/1", "https://venue.example.com/calendar/")
            == "https://venue.example.com/events/1"
        )

    def test_relative_to_page(self):
        assert (
            resolve_url("show/2", "https://venue.example.com/calendar/")
            == "https://venue.example.com/calendar/show/2"
        )

    def test_root_relative_on_nested_page(self):
        assert (
            resolve_url("/show/123", "https://example.com/events/")
            == "https://example.com/show/123"
        )

    def test_absolute_kept(self):
        assert resolve_url("https://tix.example.com/1", "https://venue.example.com") == (
            "https://tix.example.com/1"
        )

    def test_empty_href(self):
        assert resolve_url("", "https://venue.example.com") == ""
