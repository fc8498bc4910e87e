"""
Extraction engine: turns one source's fetched page into event records.

Strategy order (first one producing at least one record wins):
1. Source-specific embedded-JSON strategies (json mode only)
2. Generic JSON-LD structured data (json mode only)
3. CSS selector extraction (always available as the fallback)

A failure on one source never escapes: it is logged, reported to the
observer and the source contributes zero records.
"""

from datetime import datetime
from functools import partial
from typing import Optional

import structlog
from bs4 import BeautifulSoup

from .models import (
    EventRecord,
    ExtractionMode,
    ExtractionStats,
    RawDocument,
    ReferenceDate,
    SourceDescriptor,
)
from .resilience import ExtractionObserver, StrategyChain
from .sources.html_extractor import extract_from_html
from .sources.json_strategies import strategies_for


logger = structlog.get_logger(__name__)

HTML_STRATEGY = "html_selectors"


class ExtractionEngine:
    """Extract event records from raw documents for a given reference date."""

    def __init__(
        self,
        reference: ReferenceDate,
        observer: Optional[ExtractionObserver] = None,
    ):
        self.reference = reference
        self.observer = observer or ExtractionObserver()

    def extract(self, descriptor: SourceDescriptor, document: RawDocument) -> list[EventRecord]:
        """Extract records for one source; never raises for a bad page."""
        records, _ = self.extract_events(descriptor, document)
        return records

    def extract_events(
        self, descriptor: SourceDescriptor, document: RawDocument
    ) -> tuple[list[EventRecord], ExtractionStats]:
        """
        Extract records for one source and report how it went.

        Args:
            descriptor: Source descriptor (selectors, mode, region)
            document: Fetched page for that source

        Returns:
            Tuple of (records, extraction_stats)
        """
        start_time = datetime.now()
        source_url = document.url or descriptor.url

        try:
            records, strategy = self._run_strategies(descriptor, document.html, source_url)
        except Exception as e:
            self.observer.record_failure(descriptor.name, str(e))
            return [], ExtractionStats(
                source=descriptor.name,
                count=0,
                status="error",
                duration_ms=_elapsed_ms(start_time),
                error_message=str(e),
            )

        self.observer.record_success(descriptor.name, len(records), strategy)
        return records, ExtractionStats(
            source=descriptor.name,
            count=len(records),
            status="success" if records else "empty",
            strategy=strategy,
            duration_ms=_elapsed_ms(start_time),
        )

    def _run_strategies(
        self, descriptor: SourceDescriptor, html: str, source_url: str
    ) -> tuple[list[EventRecord], Optional[str]]:
        decide = partial(self.observer.emit, source=descriptor.name)

        if descriptor.extraction_mode == ExtractionMode.JSON_EMBEDDED:
            attempts = [
                (
                    strategy.name,
                    partial(
                        strategy.try_extract,
                        html,
                        descriptor,
                        source_url,
                        self.reference,
                        self.observer.emit,
                    ),
                )
                for strategy in strategies_for(descriptor)
            ]
            records, strategy_name = StrategyChain(*attempts, on_decision=decide).execute()
            if records:
                return records, strategy_name
            self.observer.emit("fallback_to_html", source=descriptor.name)

        soup = BeautifulSoup(html, "html.parser")
        records = extract_from_html(
            soup, descriptor, source_url, self.reference, on_decision=self.observer.emit
        )
        return records, HTML_STRATEGY if records else None


def extract(
    descriptor: SourceDescriptor,
    document: RawDocument,
    reference: ReferenceDate,
    observer: Optional[ExtractionObserver] = None,
) -> list[EventRecord]:
    """Convenience wrapper around ExtractionEngine.extract."""
    return ExtractionEngine(reference, observer).extract(descriptor, document)


def _elapsed_ms(start_time: datetime) -> int:
    return int((datetime.now() - start_time).total_seconds() * 1000)
