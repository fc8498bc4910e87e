"""
Source registry: the CSV of scrape targets and the fetch report.

CSV columns: source, type, region, url, container_selector, title_selector,
date_selector, time_selector, url_selector, extraction_type
"""

import csv
import json
from pathlib import Path
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from ..config import ConfigurationError
from ..models import FetchOutcome, SourceDescriptor

log = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ("source", "url")


def load_sources(path: Path) -> list[SourceDescriptor]:
    """
    Read the source registry CSV.

    Rows without a source name or URL are skipped with a warning.

    Raises:
        ConfigurationError: If the file is missing, unreadable, lacks required
            columns, or names the same source twice
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Source registry not found: {path}")

    try:
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
            if missing:
                raise ConfigurationError(
                    f"Source registry {path} is missing columns: {', '.join(missing)}"
                )
            rows = list(reader)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ConfigurationError(f"Cannot read source registry {path}: {e}") from e

    descriptors = parse_sources(rows)
    log.info("sources_loaded", path=str(path), count=len(descriptors))
    return descriptors


def parse_sources(rows: Iterable[dict]) -> list[SourceDescriptor]:
    """Turn registry rows into descriptors, enforcing unique names."""
    descriptors: list[SourceDescriptor] = []
    seen: set[str] = set()

    for line, row in enumerate(rows, start=2):
        descriptor = SourceDescriptor.from_row(row)
        if not descriptor.name or not descriptor.url:
            log.warning("source_row_skipped", line=line, reason="missing source or url")
            continue
        if descriptor.name in seen:
            raise ConfigurationError(f"Duplicate source name in registry: {descriptor.name}")
        seen.add(descriptor.name)
        descriptors.append(descriptor)

    return descriptors


def find_source(
    descriptors: list[SourceDescriptor], name: str
) -> Optional[SourceDescriptor]:
    """Case-insensitive lookup by source name."""
    wanted = name.strip().lower()
    for descriptor in descriptors:
        if descriptor.name.lower() == wanted:
            return descriptor
    return None


def load_fetch_results(path: Path) -> list[FetchOutcome]:
    """
    Read the fetch report written by the fetch step.

    Raises:
        ConfigurationError: If the report is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"{path.name} not found; run the fetch step first"
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ConfigurationError(f"{path} must contain a JSON array")
        return [FetchOutcome.model_validate(entry) for entry in data]
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"Malformed fetch report {path}: {e}") from e


def save_fetch_results(outcomes: list[FetchOutcome], path: Path) -> None:
    path = Path(path)
    payload = [outcome.model_dump(mode="json") for outcome in outcomes]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
