"""Tests for the extraction observer."""

import pytest

from servers.tonight_events.resilience.health import ExtractionObserver


class TestExtractionObserver:
    """Tests for ExtractionObserver class."""

    @pytest.fixture
    def observer(self) -> ExtractionObserver:
        """Create a fresh observer."""
        return ExtractionObserver()

    def test_emit_records_decision(self, observer: ExtractionObserver):
        observer.emit("fallback_to_html", source="The Fillmore")

        assert observer.events == [{"event": "fallback_to_html", "source": "The Fillmore"}]

    def test_events_named_filters_by_source(self, observer: ExtractionObserver):
        observer.emit("record_skipped", source="A", reason="missing_name")
        observer.emit("record_skipped", source="B", reason="missing_name")
        observer.emit("fallback_to_html", source="A")

        assert len(observer.events_named("record_skipped")) == 2
        assert observer.events_named("record_skipped", source="B") == [
            {"event": "record_skipped", "source": "B", "reason": "missing_name"}
        ]

    def test_record_success(self, observer: ExtractionObserver):
        """Should record a completed extraction."""
        observer.record_success("Eventbrite", event_count=25, strategy="server_data")

        status = observer.get_source_status("Eventbrite")
        assert status is not None
        assert status["healthy"] is True
        assert status["event_count"] == 25
        assert status["strategy"] == "server_data"
        assert status["consecutive_failures"] == 0

    def test_record_failure(self, observer: ExtractionObserver):
        """Should record a failed extraction and emit a decision."""
        observer.record_failure("Bandsintown", error="boom")

        status = observer.get_source_status("Bandsintown")
        assert status["healthy"] is False
        assert status["last_error"] == "boom"
        assert status["consecutive_failures"] == 1
        assert observer.events_named("source_failed", source="Bandsintown")

    def test_consecutive_failures_increment(self, observer: ExtractionObserver):
        observer.record_failure("Songkick", error="Error 1")
        observer.record_failure("Songkick", error="Error 2")

        assert observer.get_source_status("Songkick")["consecutive_failures"] == 2

    def test_success_resets_failures(self, observer: ExtractionObserver):
        observer.record_failure("Songkick", error="Error 1")
        observer.record_success("Songkick", event_count=4)

        assert observer.is_healthy("Songkick") is True
        assert observer.get_source_status("Songkick")["consecutive_failures"] == 0

    def test_unknown_source_is_healthy(self, observer: ExtractionObserver):
        assert observer.is_healthy("never-seen") is True
        assert observer.get_source_status("never-seen") is None

    def test_get_status_summary(self, observer: ExtractionObserver):
        observer.record_success("A", event_count=3)
        observer.record_success("B", event_count=0)
        observer.record_failure("C", error="boom")

        status = observer.get_status()

        assert status["summary"] == {"healthy": 2, "unhealthy": 1, "empty": 1, "total": 3}
        assert set(status["sources"]) == {"A", "B", "C"}
        assert observer.get_unhealthy_sources() == ["C"]
