"""
Fetch step: download each source page and save it for extraction.

Cost: Free (plain httpx GET, no JavaScript rendering)
Pages are fetched one at a time with a random pause between requests so
venue sites do not block the scraper.
"""

import asyncio
import random
import re
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog

from ..models import FetchOutcome, SourceDescriptor
from ..resilience import retry_with_backoff
from .url_validator import SSRFError, validate_url

log = structlog.get_logger(__name__)


def dump_filename(descriptor: SourceDescriptor) -> str:
    """File name for a source's HTML dump: '<Name_With_Underscores>_<sanitized url>.html'."""
    name = re.sub(r"\s+", "_", descriptor.name)
    sanitized_url = re.sub(r"[^a-z0-9]", "_", descriptor.url, flags=re.IGNORECASE).lower()
    return f"{name}_{sanitized_url}.html"


async def fetch_sources(
    descriptors: list[SourceDescriptor],
    html_dir: Path,
    fetch_config: dict[str, Any],
    client: Optional[httpx.AsyncClient] = None,
) -> list[FetchOutcome]:
    """
    Fetch every source page sequentially and save the HTML.

    Args:
        descriptors: Sources to fetch
        html_dir: Directory receiving the HTML dumps
        fetch_config: The 'fetch' config section
        client: Optional preconfigured client (tests inject one)

    Returns:
        One FetchOutcome per descriptor, in order
    """
    html_dir = Path(html_dir)
    html_dir.mkdir(parents=True, exist_ok=True)

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            timeout=fetch_config.get("timeout_seconds", 30.0),
            headers={"User-Agent": fetch_config["user_agent"]},
            follow_redirects=True,
        )

    outcomes: list[FetchOutcome] = []
    try:
        for i, descriptor in enumerate(descriptors):
            outcome = await fetch_source(descriptor, html_dir, fetch_config, client)
            outcomes.append(outcome)

            if i < len(descriptors) - 1:
                delay = random.uniform(
                    fetch_config.get("min_delay_seconds", 1.0),
                    fetch_config.get("max_delay_seconds", 3.0),
                )
                await asyncio.sleep(delay)
    finally:
        if owns_client:
            await client.aclose()

    succeeded = sum(1 for o in outcomes if o.success)
    log.info(
        "fetch_complete",
        total=len(outcomes),
        succeeded=succeeded,
        failed=len(outcomes) - succeeded,
    )
    return outcomes


async def fetch_source(
    descriptor: SourceDescriptor,
    html_dir: Path,
    fetch_config: dict[str, Any],
    client: httpx.AsyncClient,
) -> FetchOutcome:
    """Fetch one page; any failure becomes an unsuccessful outcome."""
    try:
        url = validate_url(
            descriptor.url,
            require_https=fetch_config.get("require_https", False),
            allowed_domains=set(fetch_config.get("allowed_domains") or []) or None,
        )
    except SSRFError as e:
        log.warning("fetch_rejected", source=descriptor.name, url=descriptor.url, error=str(e))
        return FetchOutcome(
            source=descriptor.name,
            url=descriptor.url,
            success=False,
            error=f"URL validation failed: {e}",
        )

    get_page = retry_with_backoff(
        max_attempts=fetch_config.get("max_attempts", 2),
        base_delay=fetch_config.get("min_delay_seconds", 1.0),
    )(_get_page)

    try:
        html = await get_page(client, url)
    except httpx.HTTPStatusError as e:
        return _failed(descriptor, f"HTTP {e.response.status_code}")
    except httpx.HTTPError as e:
        return _failed(descriptor, f"Request failed: {e}")

    filename = dump_filename(descriptor)
    try:
        (Path(html_dir) / filename).write_text(html, encoding="utf-8")
    except OSError as e:
        return _failed(descriptor, f"Could not save HTML: {e}")

    log.info("page_fetched", source=descriptor.name, url=url, bytes=len(html))
    return FetchOutcome(
        source=descriptor.name,
        url=descriptor.url,
        success=True,
        file=filename,
    )


async def _get_page(client: httpx.AsyncClient, url: str) -> str:
    response = await client.get(url)
    response.raise_for_status()
    return response.text


def _failed(descriptor: SourceDescriptor, error: str) -> FetchOutcome:
    log.warning("fetch_failed", source=descriptor.name, url=descriptor.url, error=error)
    return FetchOutcome(
        source=descriptor.name,
        url=descriptor.url,
        success=False,
        error=error,
    )
