"""Tests for the source registry and fetch report."""

from pathlib import Path

import pytest

from servers.tonight_events.config import ConfigurationError
from servers.tonight_events.models import ExtractionMode, FetchOutcome
from servers.tonight_events.sources.registry import (
    find_source,
    load_fetch_results,
    load_sources,
    parse_sources,
    save_fetch_results,
)

HEADER = (
    "source,type,region,url,container_selector,title_selector,"
    "date_selector,time_selector,url_selector,extraction_type\n"
)


def _write_csv(path: Path, *rows: str) -> Path:
    path.write_text(HEADER + "".join(row + "\n" for row in rows), encoding="utf-8")
    return path


class TestLoadSources:
    """Tests for reading sources.csv."""

    def test_loads_rows(self, tmp_path: Path):
        csv_path = _write_csv(
            tmp_path / "sources.csv",
            "The Fillmore,venue,San Francisco,https://www.thefillmore.com/shows,"
            "div.event-list-item,h3.event-title,span.event-date,span.event-time,a.event-link,",
            "Eventbrite,aggregator,San Francisco,https://www.eventbrite.com/d/ca/,,,,,,json",
        )

        descriptors = load_sources(csv_path)

        assert [d.name for d in descriptors] == ["The Fillmore", "Eventbrite"]
        assert descriptors[0].selectors.title == "h3.event-title"
        assert descriptors[0].extraction_mode == ExtractionMode.STANDARD
        assert descriptors[1].extraction_mode == ExtractionMode.JSON_EMBEDDED
        assert descriptors[1].selectors.container is None

    def test_quoted_selectors_with_commas(self, tmp_path: Path):
        csv_path = _write_csv(
            tmp_path / "sources.csv",
            'Venue,venue,East Bay,https://venue.example.com,"div.a, div.b",h2,,,,',
        )

        descriptor = load_sources(csv_path)[0]

        assert descriptor.selectors.container == "div.a, div.b"

    def test_skips_rows_without_url(self, tmp_path: Path):
        csv_path = _write_csv(
            tmp_path / "sources.csv",
            "No Url,venue,SF,,,,,,,",
            "Venue,venue,SF,https://venue.example.com,,,,,,",
        )

        assert [d.name for d in load_sources(csv_path)] == ["Venue"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_sources(tmp_path / "missing.csv")

    def test_missing_columns(self, tmp_path: Path):
        csv_path = tmp_path / "sources.csv"
        csv_path.write_text("name,link\nVenue,https://venue.example.com\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="missing columns: source, url"):
            load_sources(csv_path)

    def test_duplicate_names(self):
        rows = [
            {"source": "Venue", "url": "https://a.example.com"},
            {"source": "Venue", "url": "https://b.example.com"},
        ]

        with pytest.raises(ConfigurationError, match="Duplicate source name"):
            parse_sources(rows)


class TestFindSource:
    """Tests for case-insensitive lookup."""

    def test_case_insensitive(self):
        descriptors = parse_sources(
            [{"source": "The Fillmore", "url": "https://www.thefillmore.com/shows"}]
        )

        assert find_source(descriptors, "the fillmore").name == "The Fillmore"
        assert find_source(descriptors, "  THE FILLMORE ").name == "The Fillmore"
        assert find_source(descriptors, "Fox Theater") is None


class TestFetchResults:
    """Tests for fetch_results.json."""

    def test_save_and_load(self, tmp_path: Path):
        outcomes = [
            FetchOutcome(
                source="The Fillmore",
                url="https://www.thefillmore.com/shows",
                success=True,
                file="The_Fillmore_https___www_thefillmore_com_shows.html",
            ),
            FetchOutcome(
                source="Fox Theater",
                url="https://thefoxoakland.com/events/",
                success=False,
                error="HTTP 503",
            ),
        ]
        path = tmp_path / "fetch_results.json"

        save_fetch_results(outcomes, path)
        loaded = load_fetch_results(path)

        assert [o.source for o in loaded] == ["The Fillmore", "Fox Theater"]
        assert loaded[0].success is True
        assert loaded[1].error == "HTTP 503"

    def test_missing_report(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="run the fetch step first"):
            load_fetch_results(tmp_path / "fetch_results.json")

    def test_malformed_report(self, tmp_path: Path):
        path = tmp_path / "fetch_results.json"
        path.write_text('{"source": "x"}', encoding="utf-8")

        with pytest.raises(ConfigurationError, match="JSON array"):
            load_fetch_results(path)
