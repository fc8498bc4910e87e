"""
Daily pipeline: documents -> records -> artifacts.

Artifacts written to the output directory:
- all_events.json: every extracted record
- events_<YYYY-MM-DD>.json: records that pass the strict today check
- events_<YYYY-MM-DD>.md: report of today's records
- events_<YYYY-MM-DD>_cleaned.json/.md: cleanup step output
"""

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

import structlog

from .aggregator import aggregate, group_by_region_venue, select_today
from .cleanup import request_cleanup
from .config import ConfigurationError
from .extractor import ExtractionEngine
from .models import (
    AggregateResult,
    EventRecord,
    ExtractionStats,
    FetchOutcome,
    RawDocument,
    ReferenceDate,
    SourceDescriptor,
)
from .resilience import ExtractionObserver
from .template_engine import REPORT_TEMPLATE, TemplateEngine

log = structlog.get_logger(__name__)

ALL_EVENTS_FILE = "all_events.json"


@dataclass
class ProcessResult:
    """Outcome of extracting every fetched document."""

    aggregate: AggregateResult
    today: list[EventRecord]
    stats: list[ExtractionStats] = field(default_factory=list)
    skipped_sources: list[str] = field(default_factory=list)


def load_documents(outcomes: list[FetchOutcome], html_dir: Path) -> list[RawDocument]:
    """Read the HTML dumps of successful fetches; failed fetches are never loaded."""
    documents: list[RawDocument] = []

    for outcome in outcomes:
        if not outcome.success:
            log.info("source_not_fetched", source=outcome.source, error=outcome.error)
            continue
        if not outcome.file:
            log.warning("source_dump_missing", source=outcome.source, reason="no file recorded")
            continue

        path = Path(html_dir) / outcome.file
        try:
            html = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("source_dump_missing", source=outcome.source, path=str(path), error=str(e))
            continue

        documents.append(RawDocument(source=outcome.source, url=outcome.url, html=html))

    return documents


def process_documents(
    descriptors: list[SourceDescriptor],
    documents: list[RawDocument],
    reference: ReferenceDate,
    observer: Optional[ExtractionObserver] = None,
) -> ProcessResult:
    """
    Extract every document and aggregate the results.

    Args:
        descriptors: Source registry
        documents: Fetched pages, processed in order
        reference: Run date
        observer: Receives every skip/fallback decision

    Returns:
        ProcessResult with the aggregate, today's records and per-source stats
    """
    by_name = {d.name: d for d in descriptors}
    engine = ExtractionEngine(reference, observer)

    per_source: list[list[EventRecord]] = []
    stats: list[ExtractionStats] = []
    skipped: list[str] = []

    for document in documents:
        descriptor = by_name.get(document.source)
        if descriptor is None:
            log.warning("source_unknown", source=document.source)
            skipped.append(document.source)
            continue

        records, source_stats = engine.extract_events(descriptor, document)
        per_source.append(records)
        stats.append(source_stats)

    result = aggregate(per_source)
    today = select_today(result.flat, reference)

    log.info(
        "processing_complete",
        sources=len(stats),
        events=result.total,
        today=len(today),
    )
    return ProcessResult(aggregate=result, today=today, stats=stats, skipped_sources=skipped)


def write_artifacts(
    result: ProcessResult,
    run_date: date,
    output_dir: Path,
    report_path: Optional[Path] = None,
    title: str = "Tonight's Events",
    engine: Optional[TemplateEngine] = None,
    template_name: str = REPORT_TEMPLATE,
) -> dict[str, Path]:
    """Write JSON and markdown artifacts; returns the written paths by kind."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = run_date.isoformat()

    paths = {
        "all_events": output_dir / ALL_EVENTS_FILE,
        "today": output_dir / f"events_{stamp}.json",
        "report": output_dir / f"events_{stamp}.md",
    }

    save_records(result.aggregate.flat, paths["all_events"])
    save_records(result.today, paths["today"])

    markdown = (engine or TemplateEngine()).render_report(
        group_by_region_venue(result.today), title, template_name
    )
    paths["report"].write_text(markdown, encoding="utf-8")
    if report_path is not None:
        Path(report_path).write_text(markdown, encoding="utf-8")
        paths["report_copy"] = Path(report_path)

    log.info("artifacts_written", **{k: str(v) for k, v in paths.items()})
    return paths


async def run_cleanup(
    run_date: date,
    reference: ReferenceDate,
    output_dir: Path,
    cleanup_config: dict[str, Any],
    report_path: Optional[Path] = None,
    title: str = "Tonight's Events",
    engine: Optional[TemplateEngine] = None,
    template_name: str = REPORT_TEMPLATE,
) -> dict[str, Path]:
    """
    Clean up today's records with the model and write the cleaned artifacts.

    The raw artifacts are left untouched, so they stay usable if this fails.

    Raises:
        ConfigurationError: If today's artifact is missing or no API key is set
        CleanupResponseError: If the model reply cannot be parsed
    """
    output_dir = Path(output_dir)
    stamp = run_date.isoformat()
    source_path = output_dir / f"events_{stamp}.json"
    if not source_path.exists():
        raise ConfigurationError(
            f"Events file not found at {source_path}; run the process step first"
        )

    records = load_records(source_path)
    cleaned = await request_cleanup(records, reference, cleanup_config)

    paths = {
        "cleaned": output_dir / f"events_{stamp}_cleaned.json",
        "cleaned_report": output_dir / f"events_{stamp}_cleaned.md",
    }
    save_records(cleaned, paths["cleaned"])

    markdown = (engine or TemplateEngine()).render_report(
        group_by_region_venue(cleaned), f"{title} for {reference.label}", template_name
    )
    paths["cleaned_report"].write_text(markdown, encoding="utf-8")
    if report_path is not None:
        Path(report_path).write_text(markdown, encoding="utf-8")
        paths["report_copy"] = Path(report_path)

    log.info("cleanup_artifacts_written", **{k: str(v) for k, v in paths.items()})
    return paths


def save_records(records: list[EventRecord], path: Path) -> None:
    payload = [record.model_dump() for record in records]
    Path(path).write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def load_records(path: Path) -> list[EventRecord]:
    """Read a records artifact written by save_records."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read events file {path}: {e}") from e
    if not isinstance(data, list):
        raise ConfigurationError(f"Events file {path} must contain a JSON array")
    return [EventRecord.model_validate(item) for item in data]
