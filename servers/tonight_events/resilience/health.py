"""Extraction observer: decision log plus per-source health."""

from datetime import datetime
from typing import Any

import structlog

logger = structlog.get_logger()

# Decisions that mean a source or record was dropped
WARNING_EVENTS = frozenset({"strategy_failed", "container_failed", "source_failed"})


class ExtractionObserver:
    """Receive every skip/fallback decision made during extraction.

    Each decision is logged through structlog and kept in ``events`` so
    callers (and tests) can inspect what happened to a source. Per-source
    health mirrors the fetch-side bookkeeping: success with a record count,
    or failure with consecutive failure tracking.
    """

    def __init__(self):
        """Initialize observer with an empty decision log and health status."""
        self.events: list[dict[str, Any]] = []
        self.status: dict[str, dict[str, Any]] = {}

    def emit(self, event: str, **fields: Any) -> None:
        """Record a named decision with its context.

        Args:
            event: Decision name (e.g. 'fallback_to_html')
            **fields: Context such as source, strategy, error
        """
        self.events.append({"event": event, **fields})
        if event in WARNING_EVENTS:
            logger.warning(event, **fields)
        else:
            logger.debug(event, **fields)

    def events_named(self, event: str, source: str | None = None) -> list[dict[str, Any]]:
        """Return recorded decisions with the given name, optionally for one source."""
        return [
            e for e in self.events
            if e["event"] == event and (source is None or e.get("source") == source)
        ]

    def record_success(self, source: str, event_count: int, strategy: str | None = None) -> None:
        """Record a completed extraction for a source.

        Args:
            source: Source name
            event_count: Number of records extracted (may be zero)
            strategy: Name of the strategy that produced the records
        """
        self.status[source] = {
            "healthy": True,
            "last_check": datetime.now().isoformat(),
            "event_count": event_count,
            "strategy": strategy,
            "consecutive_failures": 0,
            "last_error": None,
        }
        logger.info(
            "source_extracted",
            source=source,
            event_count=event_count,
            strategy=strategy,
        )

    def record_failure(self, source: str, error: str) -> None:
        """Record a failed extraction for a source.

        Args:
            source: Source name
            error: Error message describing the failure
        """
        current = self.status.get(source, {"consecutive_failures": 0})
        consecutive = current.get("consecutive_failures", 0) + 1

        self.status[source] = {
            "healthy": False,
            "last_check": datetime.now().isoformat(),
            "event_count": 0,
            "strategy": None,
            "consecutive_failures": consecutive,
            "last_error": error,
        }
        self.emit("source_failed", source=source, error=error)

    def is_healthy(self, source: str) -> bool:
        """True if the source extracted cleanly or has not been seen."""
        return self.status.get(source, {}).get("healthy", True)

    def get_source_status(self, source: str) -> dict[str, Any] | None:
        return self.status.get(source)

    def get_status(self) -> dict[str, Any]:
        """Get full health status report.

        Returns:
            Dict with timestamp, summary counts and all source statuses
        """
        healthy_count = sum(1 for s in self.status.values() if s.get("healthy", False))
        total_count = len(self.status)
        empty_count = sum(
            1 for s in self.status.values()
            if s.get("healthy", False) and s.get("event_count", 0) == 0
        )

        return {
            "timestamp": datetime.now().isoformat(),
            "summary": {
                "healthy": healthy_count,
                "unhealthy": total_count - healthy_count,
                "empty": empty_count,
                "total": total_count,
            },
            "sources": self.status,
        }

    def get_unhealthy_sources(self) -> list[str]:
        return [name for name in self.status if not self.is_healthy(name)]
