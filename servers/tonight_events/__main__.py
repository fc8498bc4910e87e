"""
CLI entry point for the tonight's-events pipeline.

Usage:
    python -m servers.tonight_events fetch
    python -m servers.tonight_events fetch --source "The Fillmore"
    python -m servers.tonight_events process --date 2025-05-02
    python -m servers.tonight_events cleanup
    python -m servers.tonight_events run --cleanup
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import httpx
import structlog

from .cleanup import CleanupResponseError
from .config import ConfigurationError, load_config, require_valid_config, resolve_path
from .models import ReferenceDate
from .pipeline import load_documents, process_documents, run_cleanup, write_artifacts
from .resilience import ExtractionObserver
from .sources import (
    fetch_sources,
    find_source,
    load_fetch_results,
    load_sources,
    save_fetch_results,
)
from .template_engine import TemplateEngine

log = structlog.get_logger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Configure structured console logging."""
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m servers.tonight_events",
        description="Collect tonight's live music events from venue calendars",
    )
    parser.add_argument("--config", type=Path, help="JSON config file overriding the defaults")
    parser.add_argument(
        "--date",
        type=_parse_date,
        help="Reference date as YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every extraction decision")

    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Download source pages")
    fetch.add_argument("--source", help="Only fetch this source (case-insensitive)")

    commands.add_parser("process", help="Extract events from downloaded pages")
    commands.add_parser("cleanup", help="Normalize today's events with the model")

    run = commands.add_parser("run", help="Fetch and process in one go")
    run.add_argument("--cleanup", action="store_true", help="Also run the cleanup step")

    return parser


async def fetch_command(config: dict, base_dir: Path, source: Optional[str] = None) -> int:
    descriptors = load_sources(resolve_path(config, "sources_csv", base_dir))

    if source:
        descriptor = find_source(descriptors, source)
        if descriptor is None:
            raise ConfigurationError(f'Source "{source}" not found in the source registry')
        descriptors = [descriptor]

    outcomes = await fetch_sources(
        descriptors,
        resolve_path(config, "html_dir", base_dir),
        config["fetch"],
    )
    save_fetch_results(outcomes, resolve_path(config, "fetch_results", base_dir))

    failed = [o for o in outcomes if not o.success]
    print(f"Fetched {len(outcomes) - len(failed)}/{len(outcomes)} sources")
    for outcome in failed:
        print(f"  {outcome.source}: {outcome.error}")
    return 0


def process_command(
    config: dict, base_dir: Path, run_date: date, observer: ExtractionObserver
) -> int:
    descriptors = load_sources(resolve_path(config, "sources_csv", base_dir))
    outcomes = load_fetch_results(resolve_path(config, "fetch_results", base_dir))
    documents = load_documents(outcomes, resolve_path(config, "html_dir", base_dir))

    reference = ReferenceDate.from_date(run_date)
    result = process_documents(descriptors, documents, reference, observer)
    write_artifacts(
        result,
        run_date,
        resolve_path(config, "output_dir", base_dir),
        report_path=resolve_path(config, "report", base_dir),
        title=config["report"]["title"],
        template_name=config["report"]["template"],
    )

    for stats in result.stats:
        strategy = f" via {stats.strategy}" if stats.strategy else ""
        print(f"  {stats.source}: {stats.count} events ({stats.status}){strategy}")
    print(f"Total events: {result.aggregate.total}; tonight: {len(result.today)}")

    health = observer.get_status()
    log.info("extraction_health", **health["summary"])
    for name in observer.get_unhealthy_sources():
        print(f"  {name} failed: {observer.get_source_status(name)['last_error']}")
    return 0


async def cleanup_command(config: dict, base_dir: Path, run_date: date) -> int:
    paths = await run_cleanup(
        run_date,
        ReferenceDate.from_date(run_date),
        resolve_path(config, "output_dir", base_dir),
        config["cleanup"],
        report_path=resolve_path(config, "report", base_dir),
        title=config["report"]["title"],
        template_name=config["report"]["template"],
    )
    print(f"Cleaned events written to {paths['cleaned']}")
    return 0


async def main_async(args: argparse.Namespace) -> int:
    config = require_valid_config(load_config(args.config))
    if args.command != "fetch":
        template_name = config["report"]["template"]
        if not TemplateEngine().template_exists(template_name):
            raise ConfigurationError(f"Report template not found: {template_name}")
    base_dir = Path.cwd()
    run_date = args.date or date.today()
    observer = ExtractionObserver()

    if args.command == "fetch":
        return await fetch_command(config, base_dir, args.source)
    if args.command == "process":
        return process_command(config, base_dir, run_date, observer)
    if args.command == "cleanup":
        return await cleanup_command(config, base_dir, run_date)

    await fetch_command(config, base_dir)
    process_command(config, base_dir, run_date, observer)
    if args.cleanup:
        await cleanup_command(config, base_dir, run_date)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        return asyncio.run(main_async(args))
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except CleanupResponseError as e:
        log.error("cleanup_failed", error=str(e))
        return 1
    except httpx.HTTPError as e:
        log.error("cleanup_request_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}; expected YYYY-MM-DD") from e


if __name__ == "__main__":
    sys.exit(main())
