"""
Selector-driven HTML extraction for venue calendars and listing pages.

Each source supplies its own CSS selectors (container, title, date, time, link)
in the source registry. This is the fallback for every source and the only
path for sources in standard mode.
"""

import re
from typing import Callable, Optional
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag

from ..date_classifier import is_today
from ..models import EventRecord, ReferenceDate, SourceDescriptor


logger = structlog.get_logger(__name__)

# Broad container selectors can match page chrome after the listings
MAX_CONTAINERS = 30

# Longer "titles" are almost always a selector matching a description block
MAX_TITLE_LENGTH = 100

# Listing aggregators whose time selector actually holds the venue name
VENUE_FROM_TIME_SOURCES = frozenset({"Songkick"})

WHITESPACE = re.compile(r"\s+")


def extract_from_html(
    soup: BeautifulSoup,
    descriptor: SourceDescriptor,
    source_url: str,
    reference: ReferenceDate,
    on_decision: Optional[Callable[..., None]] = None,
) -> list[EventRecord]:
    """
    Extract events from a parsed page using the source's selectors.

    Args:
        soup: Parsed page
        descriptor: Source descriptor with selectors
        source_url: Page URL, used to resolve relative links
        reference: Reference date for today classification
        on_decision: Optional callback receiving (event, **fields)

    Returns:
        List of extracted records (possibly empty)
    """
    decide = on_decision or _log_decision
    selectors = descriptor.selectors

    if not selectors.container:
        decide("no_container_selector", source=descriptor.name)
        return []

    containers = soup.select(selectors.container)
    logger.debug(
        "containers_found",
        source=descriptor.name,
        count=len(containers),
        processed=min(len(containers), MAX_CONTAINERS),
    )

    records: list[EventRecord] = []
    for index, element in enumerate(containers[:MAX_CONTAINERS]):
        try:
            record = _parse_container(element, descriptor, source_url, reference)
        except Exception as e:
            decide(
                "container_failed",
                source=descriptor.name,
                index=index,
                error=str(e),
            )
            continue

        if record is None:
            decide(
                "record_skipped",
                source=descriptor.name,
                index=index,
                reason="missing_or_oversized_title",
            )
            continue

        records.append(record)

    return records


def _parse_container(
    element: Tag,
    descriptor: SourceDescriptor,
    source_url: str,
    reference: ReferenceDate,
) -> Optional[EventRecord]:
    """Parse a single container element into an EventRecord."""
    selectors = descriptor.selectors

    title = _select_title(element, selectors.title)
    if not title or len(title) > MAX_TITLE_LENGTH:
        return None

    date_text = _select_all_text(element, selectors.date)
    time_text = _select_all_text(element, selectors.time)
    link = _select_link(element, selectors.link, source_url)

    venue = descriptor.name
    if descriptor.name in VENUE_FROM_TIME_SOURCES:
        venue = time_text or descriptor.name
        time_text = ""

    return EventRecord(
        title=title,
        date=date_text,
        time=time_text,
        url=link,
        venue=venue,
        region=descriptor.region,
        source_url=source_url,
        is_today=is_today(date_text, reference),
    )


def _select_title(element: Tag, selector: Optional[str]) -> str:
    """Text of the first match, falling back to an anchor in a later match."""
    if not selector:
        return ""

    matches = element.select(selector)
    if not matches:
        return ""

    title = matches[0].get_text().strip()
    if title:
        return title

    for match in matches[1:]:
        anchor = match.find("a")
        text = anchor.get_text().strip() if anchor is not None else ""
        if text:
            return text
    return ""


def _select_all_text(element: Tag, selector: Optional[str]) -> str:
    """Join the text of every match, collapsing runs of whitespace.

    Some venues split a date across sibling nodes ("Fri" / "May 2").
    """
    if not selector:
        return ""

    parts = [match.get_text().strip() for match in element.select(selector)]
    return WHITESPACE.sub(" ", " ".join(parts)).strip()


def _select_link(element: Tag, selector: Optional[str], base_url: str) -> str:
    if not selector:
        return ""

    link_el = element.select_one(selector)
    if link_el is None:
        return ""

    href = link_el.get("href") or ""
    if isinstance(href, list):
        href = " ".join(href)
    return resolve_url(href.strip(), base_url)


def resolve_url(href: str, base_url: str) -> str:
    """Make a relative link absolute; keep the original string if that fails."""
    if not href or href.startswith("http"):
        return href
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def _log_decision(event: str, **fields) -> None:
    logger.debug(event, **fields)
