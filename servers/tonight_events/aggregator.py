"""
Merge per-source record lists and group them for reporting.

No deduplication happens here; merging duplicates is left to the
cleanup model.
"""

from typing import Iterable, Sequence

from .date_classifier import passes_strict_check
from .models import AggregateResult, EventRecord, ReferenceDate


DEFAULT_REGION = "Other Areas"
DEFAULT_VENUE = "Unknown Venue"


def aggregate(per_source_records: Iterable[Sequence[EventRecord]]) -> AggregateResult:
    """Concatenate per-source lists in processing order and group them."""
    flat: list[EventRecord] = []
    for records in per_source_records:
        flat.extend(records)

    return AggregateResult(flat=flat, grouped=group_by_region_venue(flat))


def group_by_region_venue(
    records: Iterable[EventRecord],
) -> dict[str, dict[str, list[EventRecord]]]:
    """Group records region -> venue, keeping first-seen order everywhere."""
    grouped: dict[str, dict[str, list[EventRecord]]] = {}

    for record in records:
        region = record.region if record.region.strip() else DEFAULT_REGION
        venue = record.venue if record.venue.strip() else DEFAULT_VENUE
        grouped.setdefault(region, {}).setdefault(venue, []).append(record)

    return grouped


def select_today(
    records: Iterable[EventRecord], reference: ReferenceDate
) -> list[EventRecord]:
    """Records flagged as today that also survive the strict date check."""
    return [
        record for record in records
        if record.is_today and passes_strict_check(record.date, reference)
    ]
