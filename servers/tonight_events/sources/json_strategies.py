"""
Embedded-JSON extraction strategies.

Aggregator pages usually ship their listings as JSON inside the HTML:
- Eventbrite: a ``window.__SERVER_DATA__`` assignment
- Bandsintown: Next.js hydration data in ``application/json`` script blocks
- Many venues: schema.org Event objects in ``application/ld+json`` blocks

Strategies are looked up by source name. A new source registers its own
strategy with ``register_strategy`` instead of adding a branch elsewhere.
"""

import json
import re
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

import structlog
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from ..date_classifier import format_date, format_time, is_today, same_day
from ..models import EventRecord, ReferenceDate, SourceDescriptor


logger = structlog.get_logger(__name__)

SERVER_DATA_PATTERN = re.compile(
    r"window\.__SERVER_DATA__\s*=\s*({[\s\S]*?});(?:\s*</script>|\s*window\.)"
)

TITLE_KEYS = ("title", "name", "artist")
VENUE_KEYS = ("venue", "location", "place")


class JsonStrategy:
    """Base class for embedded-JSON extraction.

    ``try_extract`` returns the extracted records, or ``None`` when the page
    does not carry the data shape the strategy knows. Parse errors propagate
    and are treated as "no match" by the engine.
    """

    name = "json"

    def try_extract(
        self,
        html: str,
        descriptor: SourceDescriptor,
        source_url: str,
        reference: ReferenceDate,
        on_decision: Optional[Callable[..., None]] = None,
    ) -> Optional[list[EventRecord]]:
        raise NotImplementedError


class ServerDataStrategy(JsonStrategy):
    """Eventbrite search pages: ``window.__SERVER_DATA__.search_data.events.results``."""

    name = "server_data"

    def try_extract(self, html, descriptor, source_url, reference, on_decision=None):
        decide = on_decision or _log_decision
        match = SERVER_DATA_PATTERN.search(html)
        if not match:
            return None

        data = json.loads(match.group(1))
        results = _dig(data, "search_data", "events", "results")
        if not isinstance(results, list):
            return None

        records = []
        for result in results:
            if not isinstance(result, dict) or not _text(result.get("name")):
                _skip(decide, descriptor, self.name, "missing_name")
                continue
            try:
                records.append(self._to_record(result, descriptor, source_url, reference))
            except (ValueError, TypeError) as e:
                _skip(decide, descriptor, self.name, "bad_timestamp", error=str(e))
        return records

    def _to_record(self, result, descriptor, source_url, reference) -> EventRecord:
        start_date = result.get("start_date")
        start_time = result.get("start_time")

        date_text = time_text = ""
        today = False
        if start_date:
            starts_at = datetime.fromisoformat(f"{start_date}T{start_time or '00:00'}")
            date_text = format_date(starts_at)
            if start_time:
                time_text = format_time(starts_at)
            today = same_day(starts_at, reference)

        venue = (
            _text(_dig(result, "primary_venue", "name"))
            or _text(_dig(result, "venue", "name"))
            or descriptor.name
        )

        return EventRecord(
            title=result["name"].strip(),
            date=date_text,
            time=time_text,
            url=_text(result.get("url")),
            venue=venue,
            region=descriptor.region,
            source_url=source_url,
            is_today=today,
        )


class HydrationStateStrategy(JsonStrategy):
    """Bandsintown pages: event lists inside Next.js hydration data."""

    name = "hydration_state"

    def try_extract(self, html, descriptor, source_url, reference, on_decision=None):
        decide = on_decision or _log_decision
        soup = BeautifulSoup(html, "html.parser")

        for script in soup.find_all("script", attrs={"type": "application/json"}):
            try:
                data = json.loads(script.get_text() or "")
            except json.JSONDecodeError:
                continue

            events = self._find_event_list(data)
            if events is None:
                continue

            logger.debug(
                "hydration_events_found",
                source=descriptor.name,
                count=len(events),
            )
            records = []
            for event in events:
                record = self._to_record(event, descriptor, source_url, reference)
                if record is None:
                    _skip(decide, descriptor, self.name, "missing_title")
                else:
                    records.append(record)
            return records

        return None

    def _find_event_list(self, data: Any) -> Optional[list]:
        page_props = _dig(data, "props", "pageProps")
        if not isinstance(page_props, dict):
            return None

        candidates = [page_props.get("events"), page_props.get("upcomingEvents")]

        flattened = []
        for query in _dig(page_props, "dehydratedState", "queries") or []:
            state_data = _dig(query, "state", "data")
            if isinstance(state_data, list):
                flattened.extend(state_data)
        candidates.append(flattened)

        for candidate in candidates:
            if _looks_like_event_list(candidate):
                return candidate
        return None

    def _to_record(self, event, descriptor, source_url, reference) -> Optional[EventRecord]:
        if not isinstance(event, dict):
            return None

        title = _first_text(
            event.get("title"), event.get("name"), _dig(event, "artist", "name")
        )
        if not title:
            return None

        raw_start = _first_present(event, ("datetime",), ("date",), ("starts_at",))
        starts_at = _parse_timestamp(raw_start)
        if starts_at is not None:
            date_text = format_date(starts_at)
            time_text = format_time(starts_at) if _has_clock_time(raw_start) else ""
            today = same_day(starts_at, reference)
        else:
            date_text = _text(event.get("date_description"))
            time_text = ""
            today = is_today(date_text, reference)

        venue = _first_present(
            event, ("venue", "name"), ("location", "name"), ("place", "name")
        )
        link = _first_present(
            event,
            ("url",),
            ("ticket_url",),
            ("ticket", "url"),
            ("tickets", 0, "url"),
            ("offers", 0, "url"),
            ("event", "url"),
        )

        return EventRecord(
            title=title,
            date=date_text,
            time=time_text,
            url=_text(link),
            venue=_text(venue),
            region=descriptor.region,
            source_url=source_url,
            is_today=today,
        )


class StructuredDataStrategy(JsonStrategy):
    """schema.org Event objects in JSON-LD blocks."""

    name = "structured_data"

    def try_extract(self, html, descriptor, source_url, reference, on_decision=None):
        decide = on_decision or _log_decision
        soup = BeautifulSoup(html, "html.parser")

        records = []
        found_block = False
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                data = json.loads(script.get_text() or "")
            except json.JSONDecodeError:
                continue
            found_block = True

            for node in iter_jsonld_nodes(data):
                if not is_event_type(node.get("@type")):
                    continue
                record = self._to_record(node, descriptor, source_url, reference)
                if record is None:
                    _skip(decide, descriptor, self.name, "missing_name")
                else:
                    records.append(record)

        return records if found_block else None

    def _to_record(self, node, descriptor, source_url, reference) -> Optional[EventRecord]:
        title = node.get("name")
        if not isinstance(title, str) or not title.strip():
            return None

        raw_start = node.get("startDate")
        starts_at = _parse_timestamp(raw_start)
        if starts_at is not None:
            date_text = format_date(starts_at)
            time_text = format_time(starts_at) if _has_clock_time(raw_start) else ""
            today = same_day(starts_at, reference)
        else:
            date_text = raw_start.strip() if isinstance(raw_start, str) else ""
            time_text = ""
            today = is_today(date_text, reference)

        return EventRecord(
            title=title.strip(),
            date=date_text,
            time=time_text,
            url=_text(node.get("url")) or _first_offer_url(node.get("offers")),
            venue=_location_name(node.get("location")),
            region=descriptor.region,
            source_url=source_url,
            is_today=today,
        )


def iter_jsonld_nodes(data: Any) -> Iterator[dict]:
    """Yield every object in a JSON-LD payload, descending into @graph."""
    if isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            for node in graph:
                yield from iter_jsonld_nodes(node)
        else:
            yield data
    elif isinstance(data, list):
        for item in data:
            yield from iter_jsonld_nodes(item)


def is_event_type(value: Any) -> bool:
    """Accept Event and its subtypes (MusicEvent, SocialEvent, ...)."""
    if isinstance(value, list):
        return any(is_event_type(v) for v in value)
    if not isinstance(value, str):
        return False
    return value.rsplit("/", 1)[-1].endswith("Event")


# Built-in registrations, keyed by source name
_SOURCE_STRATEGIES: dict[str, list[JsonStrategy]] = {
    "Eventbrite": [ServerDataStrategy()],
    "Bandsintown": [HydrationStateStrategy()],
}

GENERIC_STRATEGIES: list[JsonStrategy] = [StructuredDataStrategy()]


def register_strategy(source_name: str, strategy: JsonStrategy) -> None:
    """Register a source-specific strategy, tried before the generic ones."""
    _SOURCE_STRATEGIES.setdefault(source_name, []).append(strategy)


def strategies_for(descriptor: SourceDescriptor) -> list[JsonStrategy]:
    """Source-specific strategies for a descriptor, then the generic fallbacks."""
    return [*_SOURCE_STRATEGIES.get(descriptor.name, []), *GENERIC_STRATEGIES]


def _looks_like_event_list(candidate: Any) -> bool:
    if not isinstance(candidate, list) or not candidate:
        return False
    first = candidate[0]
    if not isinstance(first, dict):
        return False
    return any(key in first for key in TITLE_KEYS + VENUE_KEYS)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO timestamp as naive local time; offsets are converted, not dropped."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _location_name(location: Any) -> str:
    if isinstance(location, list):
        location = location[0] if location else None
    if isinstance(location, str):
        return location.strip()
    if isinstance(location, dict):
        name = location.get("name")
        if isinstance(name, str):
            return name.strip()
    return ""


def _first_offer_url(offers: Any) -> str:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if isinstance(offers, dict):
        url = offers.get("url")
        if isinstance(url, str):
            return url
    return ""


def _dig(data: Any, *path: Any) -> Any:
    """Follow dict keys / list indexes, returning None on any miss."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
        if current is None:
            return None
    return current


def _first_present(data: Any, *paths: tuple) -> Any:
    for path in paths:
        value = _dig(data, *path)
        if value not in (None, ""):
            return value
    return None


def _skip(
    decide: Callable[..., None],
    descriptor: SourceDescriptor,
    strategy: str,
    reason: str,
    **fields: Any,
) -> None:
    decide(
        "record_skipped",
        source=descriptor.name,
        strategy=strategy,
        reason=reason,
        **fields,
    )


def _log_decision(event: str, **fields: Any) -> None:
    logger.debug(event, **fields)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first_text(*values: Any) -> str:
    """First value that is a non-blank string, stripped."""
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def _has_clock_time(value: str) -> bool:
    """ISO dates without a time part ('2025-05-02') carry no showtime."""
    return ":" in value
