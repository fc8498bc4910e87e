"""
Model-assisted cleanup of extracted events.

Cost: OpenRouter API (one chat completion per run)
The model normalizes date/time formats, re-checks is_today against the run
date and merges duplicate listings. The reply must be a JSON array of
event records, optionally wrapped in a fenced code block.
"""

import json
import os
import re
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from .config import ConfigurationError
from .models import CleanupRequest, EventRecord, ReferenceDate
from .resilience import retry_with_backoff

log = structlog.get_logger(__name__)

DEFAULT_MODEL = "anthropic/claude-3.5-haiku"
OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"

CODE_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
CODE_FENCE_CLOSE = re.compile(r"\n?```\s*$")

SYSTEM_PROMPT = """You are a data cleaning assistant. Your task is to clean up and normalize event data for a concert listing application.

For each event in the provided JSON array, please:

1. Normalize date format to "Day, Month DD" (e.g., "Tuesday, May 6")
2. Fix any date parsing issues (some dates may have strange spacing or formatting)
3. Normalize time format to "h:mm PM" (e.g., "8:00 PM") - extract the most useful time info
4. Verify the "is_today" flag based on the date - set to true only if the event is for {reference_label}
5. Remove any unneeded spaces or formatting issues in any fields
6. Identify and merge any duplicate events (same title at same venue on same date)

Return the cleaned JSON array with the same structure and keys: {keys}."""

USER_PROMPT = """Here are the events that need cleaning. Please fix any formatting issues and verify the is_today flags:

{events_json}"""


class CleanupResponseError(Exception):
    """Raised when the model reply is not a usable JSON array of events."""
    pass


def build_cleanup_request(
    records: list[EventRecord],
    reference: ReferenceDate,
    model: str = DEFAULT_MODEL,
) -> CleanupRequest:
    """Build the prompt pair for a cleanup call."""
    keys = ", ".join(EventRecord.model_fields)
    events_json = json.dumps([r.model_dump() for r in records], indent=2)

    return CleanupRequest(
        model=model,
        system_prompt=SYSTEM_PROMPT.format(reference_label=reference.label, keys=keys),
        user_prompt=USER_PROMPT.format(events_json=events_json),
        reference_label=reference.label,
    )


def strip_code_fence(content: str) -> str:
    """Remove an optional leading ```/```json marker and trailing ``` marker."""
    text = content.strip()
    text = CODE_FENCE_OPEN.sub("", text, count=1)
    text = CODE_FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def parse_cleanup_response(content: str) -> list[EventRecord]:
    """
    Parse the model reply into event records.

    Raises:
        CleanupResponseError: If the reply is not a JSON array of valid records
    """
    text = strip_code_fence(content or "")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CleanupResponseError(f"Cleanup response is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise CleanupResponseError(
            f"Cleanup response must be a JSON array, got {type(data).__name__}"
        )

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise CleanupResponseError(f"Item {index} is not an object")
        try:
            records.append(EventRecord.model_validate(item))
        except ValidationError as e:
            raise CleanupResponseError(f"Item {index} is not a valid event: {e}") from e
    return records


async def request_cleanup(
    records: list[EventRecord],
    reference: ReferenceDate,
    cleanup_config: Optional[dict[str, Any]] = None,
    api_key: Optional[str] = None,
) -> list[EventRecord]:
    """
    Ask the model to clean up records.

    Args:
        records: Extracted records
        reference: Run date, stated in the instruction
        cleanup_config: The 'cleanup' config section
        api_key: Overrides the key read from the environment

    Returns:
        Cleaned records

    Raises:
        ConfigurationError: If no API key is available
        CleanupResponseError: If the reply cannot be used
        httpx.HTTPError: If the API call fails after retries
    """
    cleanup_config = cleanup_config or {}
    api_key_env = cleanup_config.get("api_key_env", "OPENROUTER_API_KEY")
    api_key = api_key or os.environ.get(api_key_env)
    if not api_key:
        raise ConfigurationError(f"{api_key_env} environment variable not set")

    request = build_cleanup_request(
        records, reference, model=cleanup_config.get("model", DEFAULT_MODEL)
    )
    log.info("cleanup_requested", events=len(records), model=request.model)

    post = retry_with_backoff(max_attempts=cleanup_config.get("max_attempts", 3))(
        _post_chat_completion
    )
    data = await post(
        request,
        api_key,
        cleanup_config.get("api_url", OPENROUTER_API_URL),
        cleanup_config.get("timeout_seconds", 120.0),
    )

    content = _message_content(data)
    cleaned = parse_cleanup_response(content)
    log.info("cleanup_complete", events_in=len(records), events_out=len(cleaned))
    return cleaned


async def _post_chat_completion(
    request: CleanupRequest, api_key: str, api_url: str, timeout: float
) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(
            api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "X-Title": "Tonight's Events Cleaner",
            },
            json={
                "model": request.model,
                "messages": [
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_prompt},
                ],
            },
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise CleanupResponseError(f"API response is not JSON: {e}") from e


def _message_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise CleanupResponseError("Invalid response from cleanup API: no message content") from e
    if not isinstance(content, str):
        raise CleanupResponseError("Invalid response from cleanup API: content is not text")
    return content
